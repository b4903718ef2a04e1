import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from stockroom.core.db import unit_of_work
from stockroom.core.security import verify_password, create_access_token, generate_refresh_token
from stockroom.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, REFRESH_TOKEN_EXPIRE_DAYS
from stockroom.models.users.user_models import User, RefreshToken
from stockroom.schemas.auth.auth_schemas import TokenResponse
from stockroom.schemas.users.user_schemas import UserDetailSchema
from stockroom.utils.activity_helpers import emit_activity, actor_context
from stockroom.constants.activity_codes import ActivityCode

logger = logging.getLogger("auth.service")


def _issue_refresh_token(db: AsyncSession, user_id: int) -> str:
    value = generate_refresh_token()
    db.add(
        RefreshToken(
            user_id=user_id,
            token=value,
            expires_at=datetime.now(timezone.utc) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
        )
    )
    return value


def _access_token_for(user: User) -> str:
    return create_access_token(
        subject=user.username,
        token_version=user.token_version,
        role=user.role,
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


# =====================================================
# LOGIN
# =====================================================
async def login_user(db: AsyncSession, username: str, password: str, request=None):
    logger.info("Authenticating user", extra={"username": username})

    result = await db.execute(
        select(User).where(User.username == username)
    )
    user = result.scalars().first()

    if not user or not verify_password(password, user.password_hash):
        logger.warning("Invalid credentials", extra={"username": username})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if not user.is_active:
        logger.warning("Inactive user login blocked", extra={"username": username})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    async with unit_of_work(db):
        user.last_login = datetime.now(timezone.utc)
        refresh_value = _issue_refresh_token(db, user.id)

        await emit_activity(
            db=db,
            user_id=user.id,
            username=user.username,
            code=ActivityCode.LOGIN,
            table_name="users",
            record_id=user.id,
            request=request,
            **actor_context(user),
        )

    logger.info("Login successful", extra={"user_id": user.id})

    return {
        "auth": {
            "access_token": _access_token_for(user),
            "refresh_token": refresh_value,
            "token_type": "bearer",
        },
        "user": {
            "id": user.id,
            "username": user.username,
            "full_name": user.full_name,
            "role": user.role,
        },
    }


# =====================================================
# REFRESH
# =====================================================
async def refresh_tokens(db: AsyncSession, refresh_token_value: str) -> TokenResponse:
    logger.info("Refreshing token")

    result = await db.execute(
        select(RefreshToken).where(
            RefreshToken.token == refresh_token_value,
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > datetime.now(timezone.utc),
        )
    )
    token = result.scalars().first()

    if not token:
        logger.warning("Invalid refresh token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    user = await db.get(User, token.user_id)
    if not user or not user.is_active:
        logger.warning("Refresh blocked for inactive user", extra={"user_id": token.user_id})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User invalid or inactive",
        )

    async with unit_of_work(db):
        # Rotation: a refresh token is good for one use
        token.revoked = True
        new_refresh_value = _issue_refresh_token(db, user.id)

    logger.info("Token refreshed", extra={"user_id": user.id})

    return TokenResponse(
        access_token=_access_token_for(user),
        refresh_token=new_refresh_value,
        role=user.role,
    )


# =====================================================
# LOGOUT
# =====================================================
async def logout_user(db: AsyncSession, user: User, request=None):
    logger.info("Logging out user", extra={"user_id": user.id})

    async with unit_of_work(db):
        # Bumping the version invalidates every outstanding access token
        user.token_version += 1

        await db.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user.id)
            .values(revoked=True)
        )

        await emit_activity(
            db=db,
            user_id=user.id,
            username=user.username,
            code=ActivityCode.LOGOUT,
            table_name="users",
            record_id=user.id,
            request=request,
            **actor_context(user),
        )

    logger.info("Logout successful", extra={"user_id": user.id})


# =====================================================
# ME
# =====================================================
def get_me(user: User) -> UserDetailSchema:
    return UserDetailSchema.model_validate(user)
