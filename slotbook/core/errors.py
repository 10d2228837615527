"""
Service error taxonomy.

Every failure that crosses the service boundary is one of:

  InvalidRequestError  malformed input or business-rule violation (400)
  NotFoundError        requested entity does not exist (404)
  UnavailableError     backing store unreachable, safe to retry (503)
  InternalError        anything unexpected; detail stays in the logs (500)

Raw SQLAlchemy / driver exceptions are re-classified with `store_error`
before they leave a service function.
"""

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)

# Errors raised by the store layer. asyncpg surfaces refused connections and
# command timeouts as OSError / TimeoutError rather than DBAPI errors.
STORE_ERRORS = (SQLAlchemyError, OSError)

_UNAVAILABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
    OSError,
)


class ErrorCode(Enum):
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    UNAVAILABLE = "UNAVAILABLE"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class InvalidParam:
    """A single rejected field and the reason it was rejected."""

    name: str
    reason: str

    def to_dict(self) -> dict:
        return {"name": self.name, "reason": self.reason}


class ServiceError(Exception):
    """Base error with a code and a caller-safe message."""

    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidRequestError(ServiceError):
    code = ErrorCode.INVALID_REQUEST

    def __init__(self, *invalid_params: InvalidParam) -> None:
        super().__init__("Request parameters did not validate")
        self.invalid_params = list(invalid_params)

    def __str__(self) -> str:
        reasons = "; ".join(f"{p.name}: {p.reason}" for p in self.invalid_params)
        return f"{self.code.value}: {reasons or self.message}"


class NotFoundError(ServiceError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str, entity_id) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class UnavailableError(ServiceError):
    code = ErrorCode.UNAVAILABLE

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation}: backing store unavailable")
        self.operation = operation


class InternalError(ServiceError):
    code = ErrorCode.INTERNAL

    def __init__(self, operation: str, detail: str = "unexpected failure") -> None:
        super().__init__(f"{operation}: {detail}")
        self.operation = operation


def store_error(exc: BaseException, operation: str) -> ServiceError:
    """Classify a store-layer exception into the service taxonomy."""
    if isinstance(exc, ServiceError):
        return exc
    if isinstance(exc, _UNAVAILABLE_ERRORS):
        return UnavailableError(operation)
    return InternalError(operation, detail=f"{type(exc).__name__}: {exc}")
