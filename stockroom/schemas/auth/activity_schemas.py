# stockroom/schemas/auth/activity_schemas.py

from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime
from fastapi import Query

from stockroom.utils.response import PageData


class UserActivityFilters(BaseModel):
    user_id: Optional[int] = Query(None)
    username: Optional[str] = Query(None)
    code: Optional[str] = Query(None)
    table_name: Optional[str] = Query(None)
    record_id: Optional[int] = Query(None)
    start_date: Optional[date] = Query(None)
    end_date: Optional[date] = Query(None)

    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)

    sort_by: str = Query("created_at")
    sort_order: str = Query("desc")


class UserActivityOut(BaseModel):
    id: int
    user_id: Optional[int]
    username_snapshot: str
    code: str
    table_name: Optional[str]
    record_id: Optional[int]
    message: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class UserActivityListData(PageData[UserActivityOut]):
    pass
