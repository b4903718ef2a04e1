from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Literal
from datetime import datetime

from stockroom.utils.response import PageData


# =========================
# CREATE / UPDATE
# =========================
class UserCreateSchema(BaseModel):
    username: str = Field(min_length=3, max_length=150)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(default=None, max_length=150)
    password: str = Field(min_length=6)
    role: Literal["admin", "user"] = "user"


class UserUpdateSchema(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(default=None, max_length=150)
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[str] = None
    is_active: Optional[bool] = None
    version: int


class VersionOnlySchema(BaseModel):
    version: int


# =========================
# LIST FILTERS
# =========================
class UserListFilters(BaseModel):
    search: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


# =========================
# RESPONSE SCHEMAS
# =========================
class UserDetailSchema(BaseModel):
    id: int
    username: str
    email: Optional[str]
    full_name: Optional[str]
    role: str
    is_active: bool
    last_login: Optional[datetime]
    created_at: datetime
    updated_at: Optional[datetime]
    version: int

    class Config:
        from_attributes = True


class UserListResponseSchema(PageData[UserDetailSchema]):
    pass
