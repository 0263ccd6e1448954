# authflow/core/errors.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from fastapi import HTTPException, status

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID = "INVALID"
    INTERNAL = "INTERNAL"


class ErrorCode(str, Enum):
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    EMAIL_EXISTS = "EMAIL_EXISTS"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# code -> (kind, http status)
_CODE_TABLE: dict[ErrorCode, tuple[ErrorKind, int]] = {
    ErrorCode.TOKEN_NOT_FOUND: (ErrorKind.NOT_FOUND, status.HTTP_400_BAD_REQUEST),
    ErrorCode.TOKEN_EXPIRED: (ErrorKind.EXPIRED, status.HTTP_400_BAD_REQUEST),
    ErrorCode.USER_NOT_FOUND: (ErrorKind.NOT_FOUND, status.HTTP_404_NOT_FOUND),
    ErrorCode.EMAIL_EXISTS: (ErrorKind.CONFLICT, status.HTTP_409_CONFLICT),
    ErrorCode.INVALID_CREDENTIALS: (ErrorKind.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED),
    ErrorCode.EMAIL_NOT_VERIFIED: (ErrorKind.UNAUTHORIZED, status.HTTP_403_FORBIDDEN),
    ErrorCode.WEAK_PASSWORD: (ErrorKind.INVALID, status.HTTP_422_UNPROCESSABLE_ENTITY),
    ErrorCode.INTERNAL_ERROR: (ErrorKind.INTERNAL, status.HTTP_500_INTERNAL_SERVER_ERROR),
}


@dataclass(frozen=True)
class AuthError:
    code: ErrorCode
    message: str
    description: Optional[str] = None

    @property
    def kind(self) -> ErrorKind:
        return _CODE_TABLE[self.code][0]

    @property
    def status_code(self) -> int:
        return _CODE_TABLE[self.code][1]


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a flow operation: either a value or an AuthError."""

    value: Optional[T] = None
    error: Optional[AuthError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        code: ErrorCode,
        message: str,
        description: Optional[str] = None,
    ) -> "Result[T]":
        return cls(error=AuthError(code=code, message=message, description=description))


def internal_error() -> Result:
    return Result.failure(ErrorCode.INTERNAL_ERROR, "Internal server error")


# ------------------------------------------------------------
# HTTP mapping
# ------------------------------------------------------------
class AppError(HTTPException):
    pass


def raise_for(error: AuthError):
    detail = {"code": error.code.value, "message": error.message}
    if error.description:
        detail["description"] = error.description
    raise AppError(status_code=error.status_code, detail=detail)


def unwrap(result: Result[T]) -> T:
    if result.error is not None:
        raise_for(result.error)
    return result.value


def unauthorized(message: str = "Unauthorized"):
    raise AppError(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "UNAUTHORIZED", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )
