from enum import Enum
from http import HTTPStatus
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failures the API reports to clients."""

    VALIDATION = "validation_error"
    ALREADY_EXISTS = "already_exists"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    UNAUTHENTICATED = "unauthenticated"
    TOKEN_EXPIRED = "token_expired"
    NOT_FOUND = "not_found"
    CONFIG = "config_error"
    INTERNAL = "internal_error"


# Duplicates and bad credentials are client errors (400), not 409/401:
# clients only distinguish them by the error kind
STATUS_BY_KIND = {
    ErrorKind.VALIDATION: HTTPStatus.BAD_REQUEST,
    ErrorKind.ALREADY_EXISTS: HTTPStatus.BAD_REQUEST,
    ErrorKind.CONFLICT: HTTPStatus.BAD_REQUEST,
    ErrorKind.INVALID_CREDENTIALS: HTTPStatus.BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: HTTPStatus.UNAUTHORIZED,
    ErrorKind.TOKEN_EXPIRED: HTTPStatus.UNAUTHORIZED,
    ErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.CONFIG: HTTPStatus.INTERNAL_SERVER_ERROR,
    ErrorKind.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
}

DEFAULT_MESSAGES = {
    ErrorKind.VALIDATION: "Invalid request data",
    ErrorKind.ALREADY_EXISTS: "User already exists",
    ErrorKind.CONFLICT: "Conflicting data",
    ErrorKind.INVALID_CREDENTIALS: "Invalid credentials",
    ErrorKind.UNAUTHENTICATED: "Authentication required",
    ErrorKind.TOKEN_EXPIRED: "Token expired",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.CONFIG: "Internal server error",
    ErrorKind.INTERNAL: "Internal server error",
}


class AppError(Exception):
    """
    Error raised by services and turned into an HTTP response at the boundary.

    Callers match on ``kind``; ``message`` is for humans only.
    """

    def __init__(self, kind: ErrorKind, message: Optional[str] = None) -> None:
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return int(STATUS_BY_KIND[self.kind])

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.kind.value}

    def __repr__(self) -> str:
        return f"AppError({self.kind.value!r}, {self.message!r})"


def validation_error(message: str) -> AppError:
    return AppError(ErrorKind.VALIDATION, message)


def not_found(message: str) -> AppError:
    return AppError(ErrorKind.NOT_FOUND, message)


def conflict(message: str) -> AppError:
    return AppError(ErrorKind.CONFLICT, message)
