from typing import Any

from fastapi import HTTPException

from models.result import DbResult, ErrorKind

ERROR_STATUS = {
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.UNKNOWN: 400,
}


def unwrap(result: DbResult) -> Any:
    """Data of a successful result, HTTPException otherwise"""
    if result.ok:
        return result.data
    raise HTTPException(
        status_code=ERROR_STATUS.get(result.error_kind, 400),
        detail=result.error,
    )
