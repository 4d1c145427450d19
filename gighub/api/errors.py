"""
Translate service-layer failures into HTTP errors.

Route handlers call ``raise_for_error`` on a failed ``ServiceResult``; the
response body is ``{"detail": {"code": ..., "message": ...}}``.
"""

from __future__ import annotations

from typing import NoReturn, TypeVar

from fastapi import HTTPException, status

from gighub.services.results import ErrorCode, ServiceError, ServiceResult

T = TypeVar("T")

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.QUOTA_EXCEEDED: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_error(error: ServiceError) -> NoReturn:
    raise HTTPException(
        status_code=STATUS_BY_CODE.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"code": error.code.value, "message": error.message},
    )


def unwrap(result: ServiceResult[T]) -> T:
    """Return ``result.data`` or raise the mapped HTTP error."""
    if not result.ok:
        raise_for_error(result.error)
    return result.data
