# stockroom/routers/auth/activity_router.py

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.db import get_db
from stockroom.schemas.auth.activity_schemas import UserActivityFilters, UserActivityListData
from stockroom.services.auth.activity_service import list_user_activities
from stockroom.utils.check_roles import require_admin
from stockroom.utils.response import APIResponse, success_response

router = APIRouter(prefix="/activities", tags=["User Activities"])
logger = logging.getLogger(__name__)


@router.get("/", response_model=APIResponse[UserActivityListData])
async def list_user_activities_api(
    filters: UserActivityFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_admin),
):
    logger.info(
        "List user activities requested",
        extra=filters.model_dump(exclude_none=True, mode="json"),
    )

    result = await list_user_activities(db=db, filters=filters)

    return success_response(
        "User activities fetched successfully",
        result,
    )
