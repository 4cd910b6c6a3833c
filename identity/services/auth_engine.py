"""
Authentication and token lifecycle: register, login, refresh rotation, logout,
role membership and password reset/change.

Per account: Anonymous -> Authenticated(access, refresh) -> Authenticated(access', refresh')
on each refresh -> LoggedOut. Each public method is one logical transaction on the
session it was built with: it commits before returning Success and rolls back on any
exception. Expected rejections come back as Failure values, never exceptions.
"""

import hmac
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from identity.core.config import Settings
from identity.core.passwords import PasswordHasher
from identity.core.tokens import (
    CLAIM_FIRST_NAME,
    CLAIM_LAST_NAME,
    CLAIM_USERNAME,
    TokenSigner,
    utcnow,
)
from identity.models import Account
from identity.models.account import new_security_stamp
from identity.repositories import AccountRepository, RoleRepository, ensure_utc
from identity.schemas.auth import AuthResult
from identity.services.lockout import AccountLockout, LockoutPolicy
from identity.services.reset_tokens import EncryptedResetTokenProvider, ResetTokenProvider
from identity.services.results import Failure, FailureKind, Result, Success, validation_failure
from identity.services.validation import (
    collect,
    email_errors,
    name_errors,
    password_errors,
    role_name_errors,
    username_errors,
)

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "User"

# Login never says which check failed (unknown user, inactive, locked or bad password).
INVALID_CREDENTIALS = Failure(FailureKind.INVALID_CREDENTIALS, "Invalid username or password.")
INVALID_REFRESH = Failure(FailureKind.INVALID_TOKEN, "Invalid token or refresh token.")
ACCOUNT_NOT_FOUND = Failure(FailureKind.NOT_FOUND, "User not found.")


class AuthEngine:
    """Orchestrates PasswordHasher, TokenSigner and the repositories for one session."""

    def __init__(
        self,
        session: Session,
        settings: Settings,
        *,
        hasher: PasswordHasher | None = None,
        signer: TokenSigner | None = None,
        lockout: LockoutPolicy | None = None,
        reset_tokens: ResetTokenProvider | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.settings = settings
        self.accounts = AccountRepository(session)
        self.roles = RoleRepository(session)
        self.hasher = hasher or PasswordHasher()
        self.signer = signer or TokenSigner(settings, clock=clock)
        if lockout is None and settings.LOCKOUT_ENABLED:
            lockout = AccountLockout(settings, clock=clock)
        self.lockout = lockout
        self.reset_tokens = reset_tokens or EncryptedResetTokenProvider(settings, clock=clock)
        self._clock = clock
        self._refresh_lifetime = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Commit on success; roll back and re-raise on any error."""
        try:
            yield
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _auth_result(
        self, account: Account, access_token: str, expires_at: datetime, refresh_token: str
    ) -> AuthResult:
        return AuthResult(
            access_token=access_token,
            refresh_token=refresh_token,
            expiration=expires_at,
            roles=account.role_names,
            id=account.id,
            username=account.username,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
        )

    def _issue_access_token(self, account: Account) -> tuple[str, datetime]:
        return self.signer.issue_access_token_with_expiry(
            account.id,
            account.email,
            account.role_names,
            extra_claims={
                CLAIM_USERNAME: account.username,
                CLAIM_FIRST_NAME: account.first_name,
                CLAIM_LAST_NAME: account.last_name,
            },
        )

    def _duplicate_failure(self, username: str, email: str) -> Failure | None:
        if self.accounts.username_taken(username):
            logger.warning("Registration rejected: username %r already exists", username)
            return Failure(FailureKind.DUPLICATE_USERNAME, "Username already exists.")
        if self.accounts.email_taken(email):
            logger.warning("Registration rejected: email %r already exists", email)
            return Failure(FailureKind.DUPLICATE_EMAIL, "Email already exists.")
        return None

    def _create_account(
        self,
        username: str,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: str,
        phone_number: str | None,
    ) -> str:
        with self._transaction():
            account = self.accounts.create(
                Account(
                    username=username.strip(),
                    email=email.strip(),
                    password_hash=password_hash,
                    first_name=first_name or "",
                    last_name=last_name or "",
                    phone_number=phone_number,
                    is_active=True,
                    is_deleted=False,
                    created_at=self._clock(),
                )
            )
            role_row = self.roles.get(role) or self.roles.create(role)
            self.roles.add_member(account, role_row)
            return account.id

    # Registration and sign-in

    def register(
        self,
        username: str,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        role: str = DEFAULT_ROLE,
        phone_number: str | None = None,
    ) -> Result[str]:
        """
        Create an active account and assign role (created if missing). Returns the new id.

        Does not sign the account in; callers wanting tokens call login() next. A
        concurrent registration of the same username/email loses on the unique
        index and gets the same duplicate failure as the up-front check.
        """
        errors = collect(
            username=username_errors(username),
            email=email_errors(email),
            password=password_errors(password),
            first_name=name_errors(first_name, "First name"),
            last_name=name_errors(last_name, "Last name"),
            role=role_name_errors(role),
        )
        if errors:
            return validation_failure(errors)

        duplicate = self._duplicate_failure(username, email)
        if duplicate is not None:
            return duplicate

        password_hash = self.hasher.hash(password)
        try:
            account_id = self._create_account(
                username, email, password_hash, first_name, last_name, role, phone_number
            )
        except IntegrityError:
            duplicate = self._duplicate_failure(username, email)
            if duplicate is not None:
                return duplicate
            if not self.roles.exists(role):
                raise
            # Another registration created the role first; it exists now.
            logger.warning("Registration of %r collided creating role %s; retrying", username, role)
            account_id = self._create_account(
                username, email, password_hash, first_name, last_name, role, phone_number
            )

        logger.info("User %s registered with role %s", username.strip(), role.strip())
        return Success(account_id)

    def login(self, username_or_email: str, password: str) -> Result[AuthResult]:
        """Verify credentials, then issue an access token and a fresh refresh token."""
        account = self.accounts.find_by_username(username_or_email) or self.accounts.find_by_email(
            username_or_email
        )
        if account is None or (self.lockout is not None and self.lockout.is_locked_out(account)):
            logger.warning("Login rejected for %r", username_or_email)
            return INVALID_CREDENTIALS

        if not self.hasher.verify(account.password_hash, password):
            if self.lockout is not None:
                with self._transaction():
                    self.lockout.record_failure(account)
                    self.accounts.update(account)
            logger.warning("Login rejected for %r", username_or_email)
            return INVALID_CREDENTIALS

        with self._transaction():
            if self.lockout is not None:
                self.lockout.reset(account)
            access_token, token_expires_at = self._issue_access_token(account)
            refresh_token = self.signer.issue_refresh_token()
            self.accounts.store_refresh_token(
                account, refresh_token, self._clock() + self._refresh_lifetime
            )
            result = self._auth_result(account, access_token, token_expires_at, refresh_token)

        logger.info("User %s logged in", result.username)
        return Success(result)

    def refresh(self, access_token: str, refresh_token: str) -> Result[AuthResult]:
        """
        Rotate both tokens. The access token may be expired but must be correctly signed;
        the refresh token must match the stored one and be unexpired. Any mismatch rejects
        with nothing written.
        """
        account_id = self.signer.extract_subject_ignoring_expiry(access_token)
        if account_id is None:
            logger.warning("Refresh rejected: access token invalid")
            return INVALID_REFRESH

        account = self.accounts.find_by_id(account_id)
        if account is None:
            logger.warning("Refresh rejected: account %s not found", account_id)
            return INVALID_REFRESH

        now = self._clock()
        stored = account.refresh_token
        expires_at = ensure_utc(account.refresh_token_expires_at)
        if (
            not stored
            or not refresh_token
            or not hmac.compare_digest(stored.encode("utf-8"), refresh_token.encode("utf-8"))
            or expires_at is None
            or expires_at <= now
        ):
            logger.warning("Refresh rejected for account %s: refresh token invalid or expired", account_id)
            return INVALID_REFRESH

        with self._transaction():
            rotated_token = self.signer.issue_refresh_token()
            rotated = self.accounts.rotate_refresh_token(
                account.id,
                expected_token=refresh_token,
                new_token=rotated_token,
                new_expires_at=now + self._refresh_lifetime,
                now=now,
            )
            if rotated:
                access_token, token_expires_at = self._issue_access_token(account)
                result = self._auth_result(account, access_token, token_expires_at, rotated_token)

        if not rotated:
            logger.warning("Refresh rejected for account %s: refresh token already rotated", account_id)
            return INVALID_REFRESH
        logger.info("User %s refreshed tokens", result.username)
        return Success(result)

    def logout(self, account_id: str) -> bool:
        """Revoke the stored refresh token. Idempotent; False only if the account is unknown."""
        account = self.accounts.find_by_id(account_id)
        if account is None:
            logger.warning("Logout failed: user %s not found", account_id)
            return False
        username = account.username
        if account.refresh_token is not None or account.refresh_token_expires_at is not None:
            with self._transaction():
                self.accounts.clear_refresh_token(account)
        logger.info("User %s logged out", username)
        return True

    # Roles

    def role_exists(self, name: str) -> bool:
        return self.roles.exists(name)

    def all_roles(self) -> list[str]:
        return [role.name for role in self.roles.list_all()]

    def create_role(self, name: str) -> Result[str]:
        errors = collect(role=role_name_errors(name))
        if errors:
            return validation_failure(errors)
        if self.roles.exists(name):
            logger.warning("Create role failed: role %s already exists", name)
            return Failure(FailureKind.ROLE_EXISTS, f"Role {name.strip()} already exists.")
        with self._transaction():
            role_name = self.roles.create(name).name
        logger.info("Role %s created", role_name)
        return Success(role_name)

    def list_roles(self, account_id: str) -> Result[list[str]]:
        account = self.accounts.find_by_id(account_id)
        if account is None:
            logger.warning("Get user roles failed: user %s not found", account_id)
            return ACCOUNT_NOT_FOUND
        return Success(self.roles.list_for_account(account))

    def add_role(self, account_id: str, role: str) -> Result[list[str]]:
        """Assign an existing role. Returns the account's roles afterwards."""
        errors = collect(role=role_name_errors(role))
        if errors:
            return validation_failure(errors)
        account = self.accounts.find_by_id(account_id)
        if account is None:
            logger.warning("Add user to role failed: user %s not found", account_id)
            return ACCOUNT_NOT_FOUND
        role_row = self.roles.get(role)
        if role_row is None:
            logger.warning("Add user to role failed: role %s does not exist", role)
            return Failure(FailureKind.ROLE_NOT_FOUND, f"Role {role} does not exist.")
        if self.roles.is_member(account, role_row):
            logger.warning("Add user to role failed: %s is already in role %s", account.username, role_row.name)
            return Failure(FailureKind.ALREADY_IN_ROLE, f"User is already in role {role_row.name}.")
        with self._transaction():
            self.roles.add_member(account, role_row)
            self.accounts.update(account)
            roles = account.role_names
        logger.info("User %s added to role %s", account_id, role)
        return Success(roles)

    def remove_role(self, account_id: str, role: str) -> Result[list[str]]:
        """Remove a current role membership. Returns the account's roles afterwards."""
        errors = collect(role=role_name_errors(role))
        if errors:
            return validation_failure(errors)
        account = self.accounts.find_by_id(account_id)
        if account is None:
            logger.warning("Remove user from role failed: user %s not found", account_id)
            return ACCOUNT_NOT_FOUND
        role_row = self.roles.get(role)
        if role_row is None:
            logger.warning("Remove user from role failed: role %s does not exist", role)
            return Failure(FailureKind.ROLE_NOT_FOUND, f"Role {role} does not exist.")
        if not self.roles.is_member(account, role_row):
            logger.warning("Remove user from role failed: %s is not in role %s", account.username, role_row.name)
            return Failure(FailureKind.NOT_IN_ROLE, f"User is not in role {role_row.name}.")
        with self._transaction():
            self.roles.remove_member(account, role_row)
            self.accounts.update(account)
            roles = account.role_names
        logger.info("User %s removed from role %s", account_id, role)
        return Success(roles)

    # Password lifecycle

    def _replace_password(self, account: Account, new_password: str) -> None:
        account.password_hash = self.hasher.hash(new_password)
        account.security_stamp = new_security_stamp()
        self.accounts.update(account)

    def change_password(
        self, account_id: str, current_password: str, new_password: str
    ) -> Result[None]:
        account = self.accounts.find_by_id(account_id)
        if account is None:
            logger.warning("Change password failed: user %s not found", account_id)
            return ACCOUNT_NOT_FOUND
        if not self.hasher.verify(account.password_hash, current_password):
            logger.warning("Change password failed for %s: incorrect current password", account_id)
            return Failure(FailureKind.PASSWORD_MISMATCH, "Incorrect password.")
        errors = collect(new_password=password_errors(new_password))
        if errors:
            return validation_failure(errors)
        with self._transaction():
            self._replace_password(account, new_password)
        logger.info("User %s changed password", account_id)
        return Success(None)

    def forgot_password(self, email: str) -> Result[str]:
        """
        Issue a reset token for an active account. The caller must answer a Failure
        exactly like a Success so account existence is not disclosed.
        """
        account = self.accounts.find_by_email(email)
        if account is None:
            logger.warning("Forgot password: no active user for %r", email)
            return ACCOUNT_NOT_FOUND
        token = self.reset_tokens.generate(account)
        logger.info("Password reset token generated for user %s", account.username)
        return Success(token)

    def reset_password(self, email: str, token: str, new_password: str) -> Result[None]:
        """Consume a reset token and replace the password. Also revokes the refresh token."""
        invalid = Failure(FailureKind.INVALID_RESET_TOKEN, "Invalid token.")
        account = self.accounts.find_by_email(email)
        if account is None:
            logger.warning("Reset password failed: no active user for %r", email)
            return invalid
        if not self.reset_tokens.validate(account, token):
            logger.warning("Reset password failed for %s: invalid token", account.username)
            return invalid
        errors = collect(new_password=password_errors(new_password))
        if errors:
            return validation_failure(errors)
        account_id = account.id
        with self._transaction():
            self._replace_password(account, new_password)
            if self.lockout is not None:
                self.lockout.reset(account)
            self.accounts.clear_refresh_token(account)
        logger.info("User %s reset password", account_id)
        return Success(None)
