"""Account persistence: lookups, creation and refresh-token state transitions."""

from datetime import UTC, datetime

from sqlalchemy import and_, func, select, update
from sqlalchemy.orm import Session

from identity.models import Account


def normalize(value: str) -> str:
    """Case-normalize a username, email or role name for uniqueness checks."""
    return value.strip().lower()


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite returns them without tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class AccountRepository:
    """
    Keyed store of accounts over one SQLAlchemy session.

    Lookups hide deleted and inactive accounts unless include_inactive=True.
    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def _visible(self, include_inactive: bool):
        if include_inactive:
            return select(Account)
        return select(Account).where(
            Account.is_deleted.is_(False),
            Account.is_active.is_(True),
        )

    def find_by_id(self, account_id: str, include_inactive: bool = False) -> Account | None:
        if not account_id:
            return None
        stmt = self._visible(include_inactive).where(Account.id == account_id)
        return self.session.scalars(stmt).first()

    def find_by_username(self, username: str, include_inactive: bool = False) -> Account | None:
        if not username:
            return None
        stmt = self._visible(include_inactive).where(
            Account.normalized_username == normalize(username)
        )
        return self.session.scalars(stmt).first()

    def find_by_email(self, email: str, include_inactive: bool = False) -> Account | None:
        if not email:
            return None
        stmt = self._visible(include_inactive).where(Account.normalized_email == normalize(email))
        return self.session.scalars(stmt).first()

    def list_active(self) -> list[Account]:
        stmt = self._visible(include_inactive=False).order_by(Account.created_at, Account.id)
        return list(self.session.scalars(stmt).all())

    def username_taken(self, username: str) -> bool:
        """True if any row, including soft-deleted ones, holds this username."""
        stmt = select(func.count()).select_from(Account).where(
            Account.normalized_username == normalize(username)
        )
        return self.session.scalar(stmt) > 0

    def email_taken(self, email: str) -> bool:
        """True if any row, including soft-deleted ones, holds this email."""
        stmt = select(func.count()).select_from(Account).where(
            Account.normalized_email == normalize(email)
        )
        return self.session.scalar(stmt) > 0

    def create(self, account: Account) -> Account:
        account.normalized_username = normalize(account.username)
        account.normalized_email = normalize(account.email)
        self.session.add(account)
        self.session.flush()
        return account

    def update(self, account: Account, modified_by: str | None = None) -> Account:
        account.modified_at = datetime.now(UTC)
        if modified_by is not None:
            account.modified_by = modified_by
        self.session.flush()
        return account

    def store_refresh_token(self, account: Account, token: str, expires_at: datetime) -> None:
        """Overwrite the account's refresh token; any previous token stops working."""
        account.refresh_token = token
        account.refresh_token_expires_at = expires_at
        self.update(account)

    def clear_refresh_token(self, account: Account) -> None:
        account.refresh_token = None
        account.refresh_token_expires_at = None
        self.update(account)

    def rotate_refresh_token(
        self,
        account_id: str,
        expected_token: str,
        new_token: str,
        new_expires_at: datetime,
        now: datetime,
    ) -> bool:
        """
        Replace the refresh token only if the stored one still equals expected_token
        and has not expired. Returns False when no row matched (lost race, revoked,
        expired). Single UPDATE statement, so concurrent callers cannot both win.
        """
        stmt = (
            update(Account)
            .where(
                and_(
                    Account.id == account_id,
                    Account.refresh_token == expected_token,
                    Account.refresh_token_expires_at > now,
                    Account.is_deleted.is_(False),
                    Account.is_active.is_(True),
                )
            )
            .values(
                refresh_token=new_token,
                refresh_token_expires_at=new_expires_at,
                modified_at=now,
                version=Account.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

