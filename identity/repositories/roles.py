"""Role persistence and account membership."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from identity.models import Account, Role
from identity.repositories.accounts import normalize


class RoleRepository:
    """Roles keyed by case-insensitive name. Flushes only; the caller commits."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, name: str) -> Role | None:
        if not name or not name.strip():
            return None
        stmt = select(Role).where(Role.normalized_name == normalize(name))
        return self.session.scalars(stmt).first()

    def exists(self, name: str) -> bool:
        return self.get(name) is not None

    def create(self, name: str) -> Role:
        role = Role(name=name.strip(), normalized_name=normalize(name))
        self.session.add(role)
        self.session.flush()
        return role

    def list_all(self) -> list[Role]:
        return list(self.session.scalars(select(Role).order_by(Role.normalized_name)).all())

    @staticmethod
    def is_member(account: Account, role: Role) -> bool:
        return any(r.id == role.id for r in account.roles)

    def add_member(self, account: Account, role: Role) -> None:
        if not self.is_member(account, role):
            account.roles.append(role)
            self.session.flush()

    def remove_member(self, account: Account, role: Role) -> None:
        account.roles[:] = [r for r in account.roles if r.id != role.id]
        self.session.flush()

    @staticmethod
    def list_for_account(account: Account) -> list[str]:
        return account.role_names
