"""Failed-login lockout: consulted before password verification."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Protocol

from identity.core.config import Settings
from identity.core.tokens import utcnow
from identity.models import Account
from identity.repositories.accounts import ensure_utc

logger = logging.getLogger(__name__)


class LockoutPolicy(Protocol):
    """Lockout signal consumed by AuthEngine.login."""

    def is_locked_out(self, account: Account) -> bool: ...

    def record_failure(self, account: Account) -> None: ...

    def reset(self, account: Account) -> None: ...


class AccountLockout:
    """
    Counts consecutive failed logins on the account row.

    After max_failed_attempts failures the account is locked for lockout_minutes;
    the counter resets on lockout and on a successful login.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utcnow) -> None:
        self.max_failed_attempts = settings.LOCKOUT_MAX_FAILED_ATTEMPTS
        self.lockout_duration = timedelta(minutes=settings.LOCKOUT_MINUTES)
        self._clock = clock

    def is_locked_out(self, account: Account) -> bool:
        lockout_end = ensure_utc(account.lockout_end)
        return lockout_end is not None and lockout_end > self._clock()

    def record_failure(self, account: Account) -> None:
        account.access_failed_count = (account.access_failed_count or 0) + 1
        if account.access_failed_count >= self.max_failed_attempts:
            account.lockout_end = self._clock() + self.lockout_duration
            account.access_failed_count = 0
            logger.warning(
                "Account %s locked until %s after repeated failed logins",
                account.id,
                account.lockout_end.isoformat(),
            )

    def reset(self, account: Account) -> None:
        account.access_failed_count = 0
        account.lockout_end = None
