# stockroom/utils/response.py

from typing import TypeVar, Generic, Optional, Dict, Any, List, Sequence
from pydantic import BaseModel

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None


class PageData(BaseModel, Generic[T]):
    """One page of a list endpoint. ``page_size`` is None for unpaged reads."""

    total: int
    items: List[T]
    page: int = 1
    page_size: Optional[int] = None
    pages: int = 1


def page_count(total: int, page_size: Optional[int]) -> int:
    if not page_size:
        return 1
    return max(1, -(-total // page_size))


def page_fields(items: Sequence, total: Optional[int], page: int, page_size: Optional[int]) -> Dict[str, Any]:
    """Keyword arguments for any ``PageData`` subclass."""
    total = total or 0
    return {
        "items": list(items),
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": page_count(total, page_size),
    }


def success_response(message: str, data: Optional[T] = None) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data,
    }
