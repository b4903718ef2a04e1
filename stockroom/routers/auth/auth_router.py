import logging
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.config import ACCESS_TOKEN_COOKIE, ACCESS_TOKEN_EXPIRE_MINUTES, IS_PRODUCTION
from stockroom.core.db import get_db
from stockroom.schemas.auth.auth_schemas import (
    LoginRequest,
    RefreshRequest,
)
from stockroom.services.auth.auth_service import (
    login_user,
    refresh_tokens,
    logout_user,
    get_me,
)
from stockroom.utils.get_user import get_current_user
from stockroom.utils.response import success_response

logger = logging.getLogger("auth.router")

router = APIRouter(prefix="/auth", tags=["Auth"])


def _set_access_cookie(response: Response, token: str):
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=token,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="lax",
    )


@router.post("/login")
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    logger.info("Login attempt", extra={"username": payload.username})

    tokens = await login_user(db, payload.username, payload.password, request=request)
    _set_access_cookie(response, tokens["auth"]["access_token"])

    return success_response("Login successful", tokens)


@router.post("/refresh")
async def refresh(
    payload: RefreshRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    logger.info("Token refresh attempt")

    tokens = await refresh_tokens(db, payload.refresh_token)
    _set_access_cookie(response, tokens.access_token)

    return success_response("Token refreshed", tokens)


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    logger.info(
        "Logout request",
        extra={"user_id": current_user.id, "username": current_user.username},
    )

    await logout_user(db, current_user, request=request)
    response.delete_cookie(ACCESS_TOKEN_COOKIE)

    return success_response("Logged out successfully", None)


@router.get("/me")
async def me(current_user=Depends(get_current_user)):
    return success_response("Current user fetched", get_me(current_user))
