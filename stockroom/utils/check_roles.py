from fastapi import Depends, HTTPException, status
from stockroom.utils.get_user import get_current_user
from stockroom.models.users.user_models import User


def require_role(roles: list[str]):
    allowed = {r.lower() for r in roles}

    async def role_checker(user: User = Depends(get_current_user)):
        if user.role.lower() not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied"
            )
        return user
    return role_checker


require_admin = require_role(["admin"])
require_any_user = require_role(["admin", "user"])
