"""Account profile queries, profile update and soft delete."""

import logging

from sqlalchemy.orm import Session

from identity.models import Account
from identity.repositories import AccountRepository
from identity.schemas.auth import AccountOut
from identity.services.results import Failure, FailureKind, Result, Success, validation_failure
from identity.services.validation import collect, name_errors

logger = logging.getLogger(__name__)


def to_account_out(account: Account) -> AccountOut:
    return AccountOut(
        id=account.id,
        username=account.username,
        email=account.email,
        first_name=account.first_name,
        last_name=account.last_name,
        phone_number=account.phone_number,
        is_active=account.is_active,
        roles=account.role_names,
        created_at=account.created_at,
    )


class AccountService:
    """Read and maintain account profiles. Deleted and inactive accounts are invisible."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.accounts = AccountRepository(session)

    def get_all(self) -> list[AccountOut]:
        return [to_account_out(a) for a in self.accounts.list_active()]

    def get_by_id(self, account_id: str) -> AccountOut | None:
        account = self.accounts.find_by_id(account_id)
        if account is None:
            logger.warning("Get user failed: user %s not found", account_id)
            return None
        return to_account_out(account)

    def get_by_email(self, email: str) -> AccountOut | None:
        account = self.accounts.find_by_email(email)
        if account is None:
            logger.warning("Get user failed: user with email %r not found", email)
            return None
        return to_account_out(account)

    def email_exists(self, email: str) -> bool:
        return self.accounts.email_taken(email)

    def username_exists(self, username: str) -> bool:
        return self.accounts.username_taken(username)

    def update_profile(
        self,
        account_id: str,
        first_name: str,
        last_name: str,
        phone_number: str | None = None,
        modified_by: str | None = None,
    ) -> Result[AccountOut]:
        errors = collect(
            first_name=name_errors(first_name, "First name"),
            last_name=name_errors(last_name, "Last name"),
        )
        if errors:
            return validation_failure(errors)
        account = self.accounts.find_by_id(account_id)
        if account is None:
            logger.warning("Update user failed: user %s not found", account_id)
            return Failure(FailureKind.NOT_FOUND, "User not found.")
        try:
            account.first_name = first_name
            account.last_name = last_name
            account.phone_number = phone_number
            self.accounts.update(account, modified_by=modified_by)
            out = to_account_out(account)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info("User %s updated", account_id)
        return Success(out)

    def delete(self, account_id: str, deleted_by: str | None = None) -> Result[None]:
        """Soft delete: flag the row and revoke its refresh token. Nothing is purged."""
        account = self.accounts.find_by_id(account_id)
        if account is None:
            logger.warning("Delete user failed: user %s not found", account_id)
            return Failure(FailureKind.NOT_FOUND, "User not found.")
        try:
            account.is_deleted = True
            account.refresh_token = None
            account.refresh_token_expires_at = None
            self.accounts.update(account, modified_by=deleted_by)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info("User %s deleted", account_id)
        return Success(None)
