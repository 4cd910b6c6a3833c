"""SQLAlchemy ORM models."""

from identity.models.account import Account, Role, account_roles
from identity.models.base import Base

__all__ = ["Account", "Base", "Role", "account_roles"]
