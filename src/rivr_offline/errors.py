"""
Error types.

Two layers:

- Exceptions (``AppError`` and subclasses) are raised by data sources,
  network code and storage.
- ``Failure`` values are *returned* by repositories instead of raising, so
  callers get ``T | Failure`` and decide how to present the message.

``to_failure()`` converts the former into the latter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeGuard

# =============================================================================
# Exceptions
# =============================================================================


class AppError(Exception):
    """Base class for all application exceptions."""

    default_code = "app_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        original_error: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.original_error = original_error

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class NetworkError(AppError):
    """Connectivity, timeout or unexpected HTTP status."""

    default_code = "network_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        is_connection_issue: bool = False,
        status_code: int | None = None,
        original_error: Any = None,
    ) -> None:
        super().__init__(message, code=code, original_error=original_error)
        self.is_connection_issue = is_connection_issue
        self.status_code = status_code

    @classmethod
    def no_connection(cls, original_error: Any = None) -> NetworkError:
        return cls(
            "No internet connection. Please check your network settings.",
            code="no_connection",
            is_connection_issue=True,
            original_error=original_error,
        )

    @classmethod
    def timeout(cls, seconds: float | None = None, original_error: Any = None) -> NetworkError:
        message = f"Request timed out after {seconds:g} seconds" if seconds else "Request timed out"
        return cls(message, code="timeout", is_connection_issue=True, original_error=original_error)

    @classmethod
    def http_error(
        cls, status_code: int, message: str | None = None, original_error: Any = None
    ) -> NetworkError:
        return cls(
            message or f"HTTP Error: {status_code}",
            code=f"http_{status_code}",
            status_code=status_code,
            original_error=original_error,
        )


class DataError(AppError):
    """Missing or malformed data."""

    default_code = "data_error"

    @classmethod
    def not_found(
        cls, entity: str | None = None, entity_id: str | None = None, original_error: Any = None
    ) -> DataError:
        suffix = f" with ID {entity_id}" if entity_id is not None else ""
        return cls(f"{entity or 'Resource'}{suffix} not found", code="not_found", original_error=original_error)

    @classmethod
    def parse_error(cls, details: str | None = None, original_error: Any = None) -> DataError:
        return cls(details or "Failed to parse data", code="parse_error", original_error=original_error)


class AuthError(AppError):
    default_code = "auth_error"

    @classmethod
    def unauthorized(cls, details: str | None = None, original_error: Any = None) -> AuthError:
        return cls(details or "Unauthorized", code="unauthorized", original_error=original_error)


class ServerError(AppError):
    default_code = "server_error"


class CacheError(AppError):
    default_code = "cache_error"


class DatabaseError(AppError):
    default_code = "database_error"


class UnexpectedError(AppError):
    default_code = "unexpected_error"


# =============================================================================
# Failures
# =============================================================================


@dataclass(frozen=True)
class Failure:
    """A returned (not raised) error with a user-presentable message."""

    message: str


@dataclass(frozen=True)
class ServerFailure(Failure):
    pass


@dataclass(frozen=True)
class CacheFailure(Failure):
    pass


@dataclass(frozen=True)
class NetworkFailure(Failure):
    pass


@dataclass(frozen=True)
class AuthFailure(Failure):
    pass


@dataclass(frozen=True)
class DatabaseFailure(Failure):
    pass


_FAILURE_FOR: list[tuple[type[AppError], type[Failure]]] = [
    (NetworkError, NetworkFailure),
    (AuthError, AuthFailure),
    (CacheError, CacheFailure),
    (DatabaseError, DatabaseFailure),
    (ServerError, ServerFailure),
    (DataError, ServerFailure),
]


def to_failure(exc: Exception) -> Failure:
    """Map an exception to the matching ``Failure`` (``ServerFailure`` otherwise)."""
    message = exc.message if isinstance(exc, AppError) else str(exc)
    for exc_type, failure_type in _FAILURE_FOR:
        if isinstance(exc, exc_type):
            return failure_type(message)
    return ServerFailure(message)


def is_failure(value: object) -> TypeGuard[Failure]:
    return isinstance(value, Failure)
