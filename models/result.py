from pydantic import BaseModel
from typing import Any, Optional
from enum import Enum


class ErrorKind(str, Enum):
    """Coarse category of a failed operation, used for HTTP status mapping"""
    CONFLICT = "conflict"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class DbResult(BaseModel):
    """Uniform {data, error} result of every data operation"""
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any) -> "DbResult":
        return cls(data=data)

    @classmethod
    def failure(cls, message: str, kind: ErrorKind = ErrorKind.UNKNOWN) -> "DbResult":
        return cls(data=None, error=message, error_kind=kind)
