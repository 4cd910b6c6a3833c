"""Auth and account services."""

from identity.services.accounts import AccountService
from identity.services.auth_engine import AuthEngine
from identity.services.results import Failure, FailureKind, Result, Success

__all__ = ["AccountService", "AuthEngine", "Failure", "FailureKind", "Result", "Success"]
