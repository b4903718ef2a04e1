import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.db import get_db
from stockroom.schemas.users.user_schemas import (
    UserCreateSchema,
    UserUpdateSchema,
    UserListFilters,
    UserDetailSchema,
    VersionOnlySchema,
    UserListResponseSchema,
)
from stockroom.services.users.user_services import (
    create_user,
    list_users,
    get_user_by_id,
    update_user,
    deactivate_user,
)
from stockroom.utils.check_roles import require_admin, require_any_user
from stockroom.utils.response import APIResponse, success_response

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger(__name__)


@router.post("/", response_model=APIResponse[UserDetailSchema])
async def create_user_api(
    payload: UserCreateSchema,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_admin),
):
    logger.info("Create user request", extra={"username": payload.username})
    user = await create_user(db, payload, admin)
    return success_response("User created successfully", user)


@router.get("/", response_model=APIResponse[UserListResponseSchema])
async def list_users_api(
    filters: UserListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_admin),
):
    logger.info("List users request", extra=filters.model_dump())
    users = await list_users(db, filters)
    return success_response("Users fetched", users)


@router.get("/{user_id}", response_model=APIResponse[UserDetailSchema])
async def get_user_api(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_any_user),
):
    logger.info("Get user by id", extra={"user_id": user_id})
    user = await get_user_by_id(db, user_id, current_user)
    return success_response("User fetched", user)


@router.patch("/{user_id}", response_model=APIResponse[UserDetailSchema])
async def update_user_api(
    user_id: int,
    payload: UserUpdateSchema,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_any_user),
):
    logger.info("Update user", extra={"user_id": user_id})
    user = await update_user(db, user_id, payload, current_user)
    return success_response("User updated successfully", user)


@router.delete("/{user_id}", response_model=APIResponse[UserDetailSchema])
async def deactivate_user_api(
    user_id: int,
    payload: VersionOnlySchema,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_admin),
):
    logger.info("Deactivate user", extra={"user_id": user_id})
    user = await deactivate_user(db, user_id, payload.version, admin)
    return success_response("User deactivated successfully", user)
