"""ORM models for accounts, roles and their membership (auth and RBAC)."""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    func,
)
from sqlalchemy.orm import relationship

from identity.models.base import Base

account_roles = Table(
    "account_roles",
    Base.metadata,
    Column("account_id", String(32), ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


def new_account_id() -> str:
    return uuid.uuid4().hex


def new_security_stamp() -> str:
    return uuid.uuid4().hex


class Role(Base):
    """Named role; names are unique case-insensitively via normalized_name."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False)
    normalized_name = Column(String(64), nullable=False, unique=True, index=True)


class Account(Base):
    """
    User account for JWT authentication and role-based access control.

    Holds at most one refresh token at a time (refresh_token + refresh_token_expires_at).
    Deleting an account only sets is_deleted; rows are never purged.
    """

    __tablename__ = "accounts"

    id = Column(String(32), primary_key=True, default=new_account_id)
    username = Column(String(255), nullable=False)
    normalized_username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False)
    normalized_email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    phone_number = Column(String(64), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    security_stamp = Column(String(32), nullable=False, default=new_security_stamp)

    refresh_token = Column(String(255), nullable=True)
    refresh_token_expires_at = Column(DateTime(timezone=True), nullable=True)

    access_failed_count = Column(Integer, nullable=False, default=0)
    lockout_end = Column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency: a stale in-memory copy fails its UPDATE instead of overwriting.
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_by = Column(String(255), nullable=True)
    modified_at = Column(DateTime(timezone=True), nullable=True)
    modified_by = Column(String(255), nullable=True)

    roles = relationship(Role, secondary=account_roles, lazy="selectin")

    __mapper_args__ = {"version_id_col": version}

    @property
    def role_names(self) -> list[str]:
        return sorted(role.name for role in self.roles)
