"""
Service Results
===============

Typed outcome objects shared by the workflow services. Workflow entry points
never raise to the HTTP layer for expected failures; they return a result
carrying either data or a ``ServiceError`` whose ``code`` classifies the
failure and whose ``message`` is already localised for the acting user.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from gighub.core.messages import translate

T = TypeVar("T")


class ErrorCode(str, enum.Enum):
    VALIDATION = "validation_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal_error"


@dataclass(frozen=True)
class ServiceError:
    code: ErrorCode
    message: str


def service_error(
    code: ErrorCode,
    key: str,
    locale: Optional[str] = None,
    **params: Any,
) -> ServiceError:
    """Build a ``ServiceError`` with the message resolved from the catalogue."""
    return ServiceError(code=code, message=translate(key, locale, **params))


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Either ``data`` (success) or ``error`` (failure), never both."""

    data: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "ServiceResult[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: ServiceError) -> "ServiceResult[T]":
        return cls(error=error)
