import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, or_

from stockroom.core.db import unit_of_work
from stockroom.core.security import hash_password
from stockroom.core.exceptions import AppException, NotFoundError
from stockroom.constants.activity_codes import ActivityCode
from stockroom.constants.error_codes import ErrorCode
from stockroom.constants.roles import ADMIN, ALLOWED_ROLES
from stockroom.models.users.user_models import User
from stockroom.schemas.users.user_schemas import (
    UserCreateSchema,
    UserUpdateSchema,
    UserListFilters,
    UserDetailSchema,
    UserListResponseSchema,
)
from stockroom.utils.activity_helpers import emit_activity, actor_context
from stockroom.utils.response import page_fields

logger = logging.getLogger(__name__)

ALLOWED_SORT_FIELDS = {
    "created_at": User.created_at,
    "username": User.username,
    "last_login": User.last_login,
}


async def _load_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found", ErrorCode.USER_NOT_FOUND, {"user_id": user_id})
    return user


def _ensure_self_or_admin(actor: User, user_id: int):
    if actor.role != ADMIN and actor.id != user_id:
        raise AppException(403, "Permission denied", ErrorCode.PERMISSION_DENIED)


# =========================
# CREATE USER
# =========================
async def create_user(db: AsyncSession, payload: UserCreateSchema, admin: User) -> UserDetailSchema:
    if payload.role not in ALLOWED_ROLES:
        raise AppException(400, "Invalid role", ErrorCode.USER_ROLE_INVALID)

    clauses = [User.username == payload.username]
    if payload.email:
        clauses.append(User.email == payload.email)

    exists = await db.scalar(select(User.id).where(or_(*clauses)))
    if exists:
        raise AppException(409, "User already exists", ErrorCode.USER_ALREADY_EXISTS)

    actor = actor_context(admin)
    admin_id = admin.id

    async with unit_of_work(db):
        user = User(
            username=payload.username,
            email=payload.email,
            full_name=payload.full_name,
            password_hash=hash_password(payload.password),
            role=payload.role,
        )
        db.add(user)
        await db.flush()

        await emit_activity(
            db=db,
            user_id=admin_id,
            username=actor["actor_name"],
            code=ActivityCode.CREATE_USER,
            table_name="users",
            record_id=user.id,
            target_name=user.username,
            target_role=user.role.capitalize(),
            **actor,
        )

    logger.info("User created", extra={"user_id": user.id})
    return UserDetailSchema.model_validate(await _load_user(db, user.id))


# =========================
# LIST USERS
# =========================
async def list_users(db: AsyncSession, filters: UserListFilters) -> UserListResponseSchema:
    conditions = []

    if filters.search:
        conditions.append(
            or_(
                User.username.ilike(f"%{filters.search}%"),
                User.full_name.ilike(f"%{filters.search}%"),
                User.email.ilike(f"%{filters.search}%"),
            )
        )

    if filters.role:
        conditions.append(User.role == filters.role)

    if filters.is_active is not None:
        conditions.append(User.is_active == filters.is_active)

    sort_col = ALLOWED_SORT_FIELDS.get(filters.sort_by)
    if sort_col is None:
        raise AppException(400, "Invalid sort field", ErrorCode.VALIDATION_ERROR)

    sort_col = sort_col.desc() if filters.sort_order.lower() == "desc" else sort_col.asc()

    total = await db.scalar(select(func.count(User.id)).where(*conditions))

    offset = (filters.page - 1) * filters.page_size
    result = await db.execute(
        select(User)
        .where(*conditions)
        .order_by(sort_col, User.id.desc())
        .limit(filters.page_size)
        .offset(offset)
    )

    return UserListResponseSchema(
        **page_fields(
            [UserDetailSchema.model_validate(u) for u in result.scalars().all()],
            total,
            filters.page,
            filters.page_size,
        )
    )


# =========================
# GET USER BY ID
# =========================
async def get_user_by_id(db: AsyncSession, user_id: int, actor: User) -> UserDetailSchema:
    _ensure_self_or_admin(actor, user_id)
    return UserDetailSchema.model_validate(await _load_user(db, user_id))


# =========================
# UPDATE USER
# =========================
async def update_user(
    db: AsyncSession,
    user_id: int,
    payload: UserUpdateSchema,
    actor: User,
) -> UserDetailSchema:
    _ensure_self_or_admin(actor, user_id)
    is_admin = actor.role == ADMIN

    user = await _load_user(db, user_id)

    values: dict = {}
    changes: list[str] = []

    # -------------------------------------------------
    # PROFILE
    # -------------------------------------------------
    if payload.email is not None and payload.email != user.email:
        taken = await db.scalar(
            select(User.id).where(User.email == payload.email, User.id != user_id)
        )
        if taken:
            raise AppException(409, "Email already in use", ErrorCode.USER_ALREADY_EXISTS)
        values["email"] = payload.email
        changes.append(f"email: {user.email} -> {payload.email}")

    if payload.full_name is not None and payload.full_name != user.full_name:
        values["full_name"] = payload.full_name
        changes.append(f"full_name: {user.full_name} -> {payload.full_name}")

    if payload.password:
        values["password_hash"] = hash_password(payload.password)
        changes.append("password changed")

    # -------------------------------------------------
    # ADMIN ONLY FIELDS
    # -------------------------------------------------
    if payload.role is not None and payload.role != user.role:
        if not is_admin:
            raise AppException(403, "Only admins can change roles", ErrorCode.PERMISSION_DENIED)
        if payload.role not in ALLOWED_ROLES:
            raise AppException(400, "Invalid role", ErrorCode.USER_ROLE_INVALID)
        values["role"] = payload.role
        changes.append(f"role: {user.role} -> {payload.role}")

    if payload.is_active is not None and payload.is_active != user.is_active:
        if not is_admin:
            raise AppException(403, "Only admins can change account status", ErrorCode.PERMISSION_DENIED)
        if not payload.is_active and user_id == actor.id:
            raise AppException(400, "You cannot deactivate your own account", ErrorCode.USER_SELF_DEACTIVATION)
        values["is_active"] = payload.is_active
        changes.append(f"is_active: {user.is_active} -> {payload.is_active}")

    if not values:
        raise AppException(400, "No changes provided", ErrorCode.VALIDATION_ERROR)

    # Role, status or password changes end the target's sessions
    if {"role", "is_active", "password_hash"} & values.keys():
        values["token_version"] = User.token_version + 1

    actor_id = actor.id
    context = actor_context(actor)

    async with unit_of_work(db):
        # -------------------------------------------------
        # OPTIMISTIC UPDATE
        # -------------------------------------------------
        result = await db.execute(
            update(User)
            .where(User.id == user_id, User.version == payload.version)
            .values(**values, version=User.version + 1)
            .returning(User.id, User.username)
            .execution_options(synchronize_session=False)
        )
        row = result.first()

        if not row:
            raise AppException(
                409,
                "User was modified by another process",
                ErrorCode.USER_VERSION_CONFLICT,
            )

        await emit_activity(
            db=db,
            user_id=actor_id,
            username=context["actor_name"],
            code=ActivityCode.UPDATE_USER,
            table_name="users",
            record_id=user_id,
            target_name=row.username,
            changes=", ".join(changes),
            **context,
        )

    logger.info("User updated", extra={"user_id": user_id})
    return UserDetailSchema.model_validate(await _load_user(db, user_id))


# =========================
# DEACTIVATE USER
# =========================
async def deactivate_user(
    db: AsyncSession,
    user_id: int,
    version: int,
    admin: User,
) -> UserDetailSchema:
    logger.info(
        "Deactivating user",
        extra={
            "target_user_id": user_id,
            "requested_version": version,
            "actor_id": admin.id,
        },
    )

    if user_id == admin.id:
        raise AppException(400, "You cannot deactivate your own account", ErrorCode.USER_SELF_DEACTIVATION)

    await _load_user(db, user_id)

    admin_id = admin.id
    context = actor_context(admin)

    async with unit_of_work(db):
        result = await db.execute(
            update(User)
            .where(
                User.id == user_id,
                User.version == version,
                User.is_active.is_(True),
            )
            .values(
                is_active=False,
                token_version=User.token_version + 1,
                version=User.version + 1,
            )
            .returning(User.id, User.username)
            .execution_options(synchronize_session=False)
        )
        row = result.first()

        if not row:
            logger.warning(
                "User already inactive or version conflict",
                extra={"target_user_id": user_id},
            )
            raise AppException(409, "User already inactive or modified", ErrorCode.USER_VERSION_CONFLICT)

        await emit_activity(
            db=db,
            user_id=admin_id,
            username=context["actor_name"],
            code=ActivityCode.DEACTIVATE_USER,
            table_name="users",
            record_id=user_id,
            target_name=row.username,
            **context,
        )

    logger.info("User deactivated", extra={"target_user_id": user_id})
    return UserDetailSchema.model_validate(await _load_user(db, user_id))
