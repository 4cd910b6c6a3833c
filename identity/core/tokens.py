"""JWT access token creation/verification and opaque refresh token generation."""

import base64
import logging
import secrets
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from identity.core.config import Settings

logger = logging.getLogger(__name__)

# 64 random bytes = 512 bits of entropy per refresh token.
REFRESH_TOKEN_BYTES = 64

# Claims every access token must carry to be accepted.
REQUIRED_CLAIMS = ["exp", "iat", "sub", "iss", "aud", "jti"]

# Claim names in the issued token.
CLAIM_USERNAME = "unique_name"
CLAIM_EMAIL = "email"
CLAIM_ROLES = "role"
CLAIM_FIRST_NAME = "given_name"
CLAIM_LAST_NAME = "family_name"


def utcnow() -> datetime:
    return datetime.now(UTC)


class TokenSigner:
    """
    Issues and validates HMAC-signed access tokens for one issuer/audience/key.

    Validation helpers never raise: any signature, claim or parse problem yields
    False / None. One clock drives both issuance and the exp/nbf/iat checks,
    so a signer always accepts the tokens it has just issued.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utcnow) -> None:
        self._key = settings.JWT_SECRET.get_secret_value()
        self._algorithm = settings.JWT_ALGORITHM
        self._issuer = settings.JWT_ISSUER
        self._audience = settings.JWT_AUDIENCE
        self._lifetime = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self._leeway = settings.JWT_CLOCK_SKEW_SECONDS
        self._clock = clock

    def access_token_expiry(self) -> datetime:
        """Expiry an access token issued now would carry (whole seconds, as in the exp claim)."""
        return (self._clock() + self._lifetime).replace(microsecond=0)

    def issue_access_token_with_expiry(
        self,
        account_id: str,
        email: str,
        roles: Iterable[str],
        extra_claims: Mapping[str, Any] | None = None,
    ) -> tuple[str, datetime]:
        """Create a signed access token and return it with the exact expiry it was signed with."""
        now = self._clock()
        expires_at = (now + self._lifetime).replace(microsecond=0)
        payload: dict[str, Any] = {}
        if extra_claims:
            payload.update(extra_claims)
        payload.update(
            {
                "sub": str(account_id),
                CLAIM_EMAIL: email,
                "jti": str(uuid.uuid4()),
                CLAIM_ROLES: sorted(set(roles)),
                "iss": self._issuer,
                "aud": self._audience,
                "iat": now,
                "nbf": now,
                "exp": expires_at,
            }
        )
        return jwt.encode(payload, self._key, algorithm=self._algorithm), expires_at

    def issue_access_token(
        self,
        account_id: str,
        email: str,
        roles: Iterable[str],
        extra_claims: Mapping[str, Any] | None = None,
    ) -> str:
        """Create a signed access token with sub, email, jti, role, iss, aud, iat, nbf and exp."""
        token, _ = self.issue_access_token_with_expiry(account_id, email, roles, extra_claims)
        return token

    @staticmethod
    def issue_refresh_token() -> str:
        """Return a high-entropy opaque refresh token (standard base64, no structure)."""
        return base64.b64encode(secrets.token_bytes(REFRESH_TOKEN_BYTES)).decode("ascii")

    def _check_times(self, payload: dict[str, Any], verify_exp: bool) -> None:
        """Compare exp/nbf/iat with the signer's clock. Raises jwt.PyJWTError."""
        now = self._clock().timestamp()
        try:
            exp = int(payload["exp"])
            iat = int(payload["iat"])
            nbf = int(payload["nbf"]) if "nbf" in payload else None
        except (TypeError, ValueError) as e:
            raise jwt.DecodeError("Time claims must be integers") from e
        if verify_exp and exp <= now - self._leeway:
            raise jwt.ExpiredSignatureError("Signature has expired")
        if nbf is not None and nbf > now + self._leeway:
            raise jwt.ImmatureSignatureError("The token is not yet valid (nbf)")
        if iat > now + self._leeway:
            raise jwt.ImmatureSignatureError("The token is not yet valid (iat)")

    def _decode(self, token: str, verify_exp: bool) -> dict[str, Any]:
        """Decode with full signature/issuer/audience checks. Raises jwt.PyJWTError."""
        header = jwt.get_unverified_header(token)
        if header.get("alg") != self._algorithm:
            raise jwt.InvalidAlgorithmError(f"Unexpected token algorithm: {header.get('alg')!r}")
        payload = jwt.decode(
            token,
            self._key,
            algorithms=[self._algorithm],
            issuer=self._issuer,
            audience=self._audience,
            options={
                "require": REQUIRED_CLAIMS,
                "verify_exp": False,
                "verify_nbf": False,
                "verify_iat": False,
            },
        )
        self._check_times(payload, verify_exp)
        return payload

    def decode_claims(self, token: str) -> dict[str, Any] | None:
        """Return the claims of a fully valid token, or None."""
        if not token:
            return None
        try:
            return self._decode(token, verify_exp=True)
        except jwt.PyJWTError as e:
            logger.debug("Access token rejected: %s", e)
            return None

    def validate(self, token: str) -> bool:
        """True when signature, algorithm, issuer, audience and expiry all check out."""
        return self.decode_claims(token) is not None

    def extract_subject_ignoring_expiry(self, token: str) -> str | None:
        """
        Return the subject of a correctly signed token even if it has expired.

        Used by the refresh flow only. Signature, algorithm, issuer and audience
        are still enforced.
        """
        if not token:
            return None
        try:
            payload = self._decode(token, verify_exp=False)
        except jwt.PyJWTError as e:
            logger.debug("Expired-token subject extraction rejected: %s", e)
            return None
        sub = payload.get("sub")
        if not sub or not isinstance(sub, str):
            return None
        return sub
