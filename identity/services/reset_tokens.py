"""One-time password reset tokens bound to the account's security stamp."""

import json
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from identity.core.config import Settings
from identity.core.crypto import InvalidToken, SymmetricCipher
from identity.core.tokens import utcnow
from identity.models import Account

logger = logging.getLogger(__name__)

RESET_PURPOSE = "reset_password"


class ResetTokenProvider(Protocol):
    """Issues and checks password reset tokens for an account."""

    def generate(self, account: Account) -> str: ...

    def validate(self, account: Account, token: str) -> bool: ...


class EncryptedResetTokenProvider:
    """
    Reset token = encrypted {sub, stamp, purpose}, valid for the configured TTL.

    The token stops validating once the account's security_stamp changes, which
    happens on every password reset/change, so each token can be used once.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utcnow) -> None:
        self._cipher = SymmetricCipher(settings)
        self._ttl_seconds = settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES * 60
        self._clock = clock

    def generate(self, account: Account) -> str:
        payload = json.dumps(
            {"sub": account.id, "stamp": account.security_stamp, "purpose": RESET_PURPOSE},
            separators=(",", ":"),
        )
        return self._cipher.encrypt(payload, at_time=int(self._clock().timestamp()))

    def validate(self, account: Account, token: str) -> bool:
        if not token:
            return False
        try:
            payload = json.loads(
                self._cipher.decrypt(
                    token,
                    ttl_seconds=self._ttl_seconds,
                    current_time=int(self._clock().timestamp()),
                )
            )
        except (InvalidToken, UnicodeError, ValueError) as e:
            logger.debug("Reset token rejected for account %s: %s", account.id, type(e).__name__)
            return False
        if not isinstance(payload, dict):
            return False
        return (
            payload.get("purpose") == RESET_PURPOSE
            and payload.get("sub") == account.id
            and payload.get("stamp") == account.security_stamp
        )
