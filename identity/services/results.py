"""Tagged results returned by the auth services for expected outcomes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    """Why an operation was rejected. Expected outcomes, not faults."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_TOKEN = "invalid_token"
    DUPLICATE_USERNAME = "duplicate_username"
    DUPLICATE_EMAIL = "duplicate_email"
    ROLE_EXISTS = "role_exists"
    ROLE_NOT_FOUND = "role_not_found"
    ALREADY_IN_ROLE = "already_in_role"
    NOT_IN_ROLE = "not_in_role"
    INVALID_RESET_TOKEN = "invalid_reset_token"
    PASSWORD_MISMATCH = "password_mismatch"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Failure:
    """
    Rejected operation.

    errors maps field names to messages for validation failures; empty otherwise.
    """

    kind: FailureKind
    message: str
    errors: dict[str, list[str]] = field(default_factory=dict)
    ok: bool = field(default=False, init=False)


Result = Success[T] | Failure


def validation_failure(errors: dict[str, list[str]]) -> Failure:
    return Failure(FailureKind.VALIDATION, "One or more validation errors occurred.", errors)
