from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class BackupCreate(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=100)


class BackupRestore(BaseModel):
    filename: str


class BackupCleanup(BaseModel):
    days_to_keep: Optional[int] = Field(default=None, ge=1, le=3650)


class BackupMeta(BaseModel):
    backup_time: datetime
    reason: str
    original_path: str
    file_size: int


class BackupOut(BaseModel):
    filename: str
    size: int
    created_at: datetime
    meta: Optional[BackupMeta] = None


class BackupListData(BaseModel):
    total: int
    items: List[BackupOut]


class BackupCleanupResult(BaseModel):
    deleted_count: int
    days_to_keep: int
