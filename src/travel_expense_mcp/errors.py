"""Error taxonomy shared by the Concur, TripIt and per-diem layers.

Callers branch on ``exc.kind`` (and ``status_code`` where present) instead of
matching message text.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    AUTH_CONFIG = "auth_config"
    TOKEN_REFRESH = "token_refresh"
    API = "api"
    CONNECTION = "connection"
    INVALID_DATE_RANGE = "invalid_date_range"
    VALIDATION = "validation"
    RATE_TABLE = "rate_table"


class ServiceError(Exception):
    """Base error for all failures surfaced to tool callers."""

    kind: ErrorKind


class AuthConfigError(ServiceError):
    """Raised when no usable credential combination is configured."""

    kind = ErrorKind.AUTH_CONFIG


class TokenRefreshError(ServiceError):
    """Raised when the token endpoint rejects an exchange."""

    kind = ErrorKind.TOKEN_REFRESH

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ApiError(ServiceError):
    """Raised for non-2xx resource responses."""

    kind = ErrorKind.API

    def __init__(
        self,
        message: str,
        status_code: int,
        status_text: str = "",
        body: Any = None,
        context: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        self.context = context


class ConnectionFailedError(ServiceError):
    """Raised when the remote API cannot be reached."""

    kind = ErrorKind.CONNECTION


class InvalidDateRangeError(ServiceError):
    kind = ErrorKind.INVALID_DATE_RANGE


class ValidationError(ServiceError):
    """Raised for domain input the provider would reject."""

    kind = ErrorKind.VALIDATION


class RateTableError(ServiceError):
    kind = ErrorKind.RATE_TABLE
