# stockroom/services/auth/activity_service.py

import logging
from datetime import datetime, time, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc, asc

from stockroom.models.support.activity_models import UserActivity
from stockroom.schemas.auth.activity_schemas import (
    UserActivityOut,
    UserActivityFilters,
    UserActivityListData,
)
from stockroom.core.exceptions import AppException
from stockroom.constants.error_codes import ErrorCode
from stockroom.utils.response import page_fields

logger = logging.getLogger(__name__)

ALLOWED_SORT_FIELDS = {
    "created_at": UserActivity.created_at,
    "username": UserActivity.username_snapshot,
    "code": UserActivity.code,
}


def _day_start(day) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


async def list_user_activities(
    *,
    db: AsyncSession,
    filters: UserActivityFilters,
) -> UserActivityListData:
    # -------------------------
    # Filters
    # -------------------------
    conditions = []

    if filters.user_id:
        conditions.append(UserActivity.user_id == filters.user_id)

    if filters.username:
        conditions.append(UserActivity.username_snapshot.ilike(f"%{filters.username}%"))

    if filters.code:
        conditions.append(UserActivity.code == filters.code.upper())

    if filters.table_name:
        conditions.append(UserActivity.table_name == filters.table_name)

    if filters.record_id:
        conditions.append(UserActivity.record_id == filters.record_id)

    if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
        raise AppException(
            400,
            "start_date must not be after end_date",
            ErrorCode.VALIDATION_ERROR,
        )

    if filters.start_date:
        conditions.append(UserActivity.created_at >= _day_start(filters.start_date))

    if filters.end_date:
        # end_date is inclusive
        conditions.append(UserActivity.created_at < _day_start(filters.end_date + timedelta(days=1)))

    # -------------------------
    # Sorting (safe)
    # -------------------------
    sort_column = ALLOWED_SORT_FIELDS.get(filters.sort_by)
    if sort_column is None:
        raise AppException(
            400,
            "Invalid sort field",
            ErrorCode.VALIDATION_ERROR,
        )

    order_fn = desc if filters.sort_order == "desc" else asc

    # -------------------------
    # Pagination
    # -------------------------
    offset = (filters.page - 1) * filters.page_size
    query = (
        select(UserActivity)
        .where(*conditions)
        .order_by(order_fn(sort_column), order_fn(UserActivity.id))
        .limit(filters.page_size)
        .offset(offset)
    )

    # -------------------------
    # Execute
    # -------------------------
    total = await db.scalar(select(func.count(UserActivity.id)).where(*conditions))
    activities = (await db.execute(query)).scalars().all()

    logger.info(
        "User activities fetched",
        extra={
            "total": total,
            "page": filters.page,
            "page_size": filters.page_size,
        },
    )

    return UserActivityListData(
        **page_fields(
            [UserActivityOut.model_validate(a) for a in activities],
            total,
            filters.page,
            filters.page_size,
        )
    )
