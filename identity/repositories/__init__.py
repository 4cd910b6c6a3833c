"""Repositories over the SQLAlchemy session (accounts, roles)."""

from identity.repositories.accounts import AccountRepository, ensure_utc, normalize
from identity.repositories.roles import RoleRepository

__all__ = ["AccountRepository", "RoleRepository", "ensure_utc", "normalize"]
