"""
Error taxonomy and the Result type shared by the validators.

Pure helpers (validation, filter building, hashing) return a Result.
Controllers raise one of the ApiError subclasses, which the app's
exception handlers turn into the `{ok: false, error}` envelope.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class Result:
    ok: bool = True
    error: Optional[str] = None
    data: Any = None

    @classmethod
    def success(cls, data: Any = None) -> "Result":
        return cls(ok=True, error=None, data=data)

    @classmethod
    def failure(cls, error: str) -> "Result":
        return cls(ok=False, error=error, data=None)


class ApiError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ApiError):
    status_code = 400


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class Unauthenticated(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class OperationFailed(ApiError):
    """A persistence write that affected zero rows."""
    status_code = 400
