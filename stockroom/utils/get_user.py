import logging
from fastapi import Cookie, Depends, HTTPException, Header, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from stockroom.core.config import ACCESS_TOKEN_COOKIE
from stockroom.core.db import get_db
from stockroom.core.security import decode_access_token
from stockroom.models.users.user_models import User

logger = logging.getLogger("auth.guard")


def _extract_token(authorization: str | None, cookie_token: str | None) -> str:
    if authorization:
        if not authorization.startswith("Bearer "):
            logger.warning("Malformed authorization header")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authorization header",
            )
        return authorization.split("Bearer ")[1].strip()

    if cookie_token:
        return cookie_token

    logger.warning("Missing bearer token")
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
    )


async def get_current_user(
    request: Request,
    authorization: str | None = Header(None),
    access_token: str | None = Cookie(None, alias=ACCESS_TOKEN_COOKIE),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = _extract_token(authorization, access_token)
    payload = decode_access_token(token)

    username = payload.get("sub")
    token_version = payload.get("token_version")

    result = await db.execute(
        select(User).where(User.username == username)
    )
    user = result.scalars().first()

    if not user:
        logger.warning("Token user not found", extra={"username": username})
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        logger.warning("Inactive user access blocked", extra={"user_id": user.id})
        raise HTTPException(status_code=403, detail="User account is inactive")

    if user.token_version != token_version:
        logger.warning("Token version mismatch", extra={"user_id": user.id})
        raise HTTPException(status_code=401, detail="Session expired")

    request.state.user = user
    return user
