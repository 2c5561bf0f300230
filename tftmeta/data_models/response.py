"""
Response envelope handed to the API layer.

ApiResponse is generic over its payload and holds exactly one of data or error.
"""

import math
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from tftmeta.utils.exceptions import FilterValidationError, MetaEngineException

T = TypeVar('T')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses, enums and datetimes into JSON-ready structures."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


@dataclass(frozen=True)
class ApiError:
    code: str
    message: str
    details: Optional[List[Dict[str, Any]]] = None


@dataclass(frozen=True)
class PaginationMeta:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def create(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        if limit < 1:
            raise ValueError("limit must be at least 1")
        total_pages = math.ceil(total / limit)
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

    @classmethod
    def from_offset(cls, offset: int, limit: int, total: int) -> "PaginationMeta":
        return cls.create(offset // limit + 1, limit, total)


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[ApiError] = None
    timestamp: datetime = field(default_factory=_utcnow)
    request_id: Optional[str] = None

    def __post_init__(self):
        if self.success and self.error is not None:
            raise ValueError("successful response cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("failed response must carry an error")
        if not self.success and self.data is not None:
            raise ValueError("failed response cannot carry data")

    @classmethod
    def ok(cls, data: T, request_id: Optional[str] = None) -> "ApiResponse[T]":
        return cls(success=True, data=data, request_id=request_id)

    @classmethod
    def fail(cls, code: str, message: str,
             details: Optional[List[Dict[str, Any]]] = None) -> "ApiResponse[T]":
        return cls(success=False, error=ApiError(code=code, message=message, details=details))

    @classmethod
    def from_exception(cls, exc: MetaEngineException) -> "ApiResponse[T]":
        details = None
        if isinstance(exc, FilterValidationError):
            details = [to_jsonable(e) for e in exc.errors]
        return cls.fail(exc.code, exc.user_message, details)

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": self.success, "timestamp": self.timestamp.isoformat()}
        if self.data is not None:
            body["data"] = to_jsonable(self.data)
        if self.error is not None:
            body["error"] = to_jsonable(self.error)
        if self.request_id:
            body["request_id"] = self.request_id
        return body


@dataclass(frozen=True)
class PaginatedResponse(ApiResponse[List[T]]):
    meta: Optional[PaginationMeta] = None

    @classmethod
    def page(cls, items: List[T], meta: PaginationMeta) -> "PaginatedResponse[T]":
        return cls(success=True, data=items, meta=meta)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.meta is not None:
            body["meta"] = to_jsonable(self.meta)
        return body
