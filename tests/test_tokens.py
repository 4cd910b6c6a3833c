"""Unit tests for identity.core.tokens: issuance, validation, expiry and subject extraction."""

import base64
import unittest
from datetime import UTC, datetime, timedelta

import jwt

from identity.core.tokens import CLAIM_ROLES, REFRESH_TOKEN_BYTES, TokenSigner

from support import FakeClock, make_settings


def _signer(clock: FakeClock | None = None, **overrides: object) -> TokenSigner:
    if clock is None:
        return TokenSigner(make_settings(**overrides))
    return TokenSigner(make_settings(**overrides), clock=clock)


class TestIssueAndValidate(unittest.TestCase):
    """A freshly issued token validates and carries the expected claims."""

    def test_fresh_token_validates(self) -> None:
        signer = _signer()
        token = signer.issue_access_token("acc-1", "alice@x.com", ["User"])
        self.assertTrue(signer.validate(token))

    def test_compact_three_part_hs256(self) -> None:
        token = _signer().issue_access_token("acc-1", "alice@x.com", ["User"])
        self.assertEqual(len(token.split(".")), 3)
        self.assertEqual(jwt.get_unverified_header(token)["alg"], "HS256")

    def test_claims(self) -> None:
        signer = _signer()
        token = signer.issue_access_token(
            "acc-1", "alice@x.com", ["User", "Admin"], extra_claims={"unique_name": "alice"}
        )
        claims = signer.decode_claims(token)
        self.assertIsNotNone(claims)
        self.assertEqual(claims["sub"], "acc-1")
        self.assertEqual(claims["email"], "alice@x.com")
        self.assertEqual(claims[CLAIM_ROLES], ["Admin", "User"])
        self.assertEqual(claims["unique_name"], "alice")
        self.assertEqual(claims["iss"], "identity-tests")
        self.assertEqual(claims["aud"], "identity-tests-clients")
        self.assertEqual(claims["exp"] - claims["iat"], 15 * 60)

    def test_extra_claims_cannot_override_reserved_claims(self) -> None:
        signer = _signer()
        token = signer.issue_access_token("acc-1", "a@x.com", [], extra_claims={"sub": "evil"})
        self.assertEqual(signer.decode_claims(token)["sub"], "acc-1")

    def test_each_token_has_unique_jti(self) -> None:
        signer = _signer()
        first = signer.decode_claims(signer.issue_access_token("acc-1", "a@x.com", []))
        second = signer.decode_claims(signer.issue_access_token("acc-1", "a@x.com", []))
        self.assertNotEqual(first["jti"], second["jti"])


class TestExpiry(unittest.TestCase):
    """Tokens issued far enough in the past are expired (simulated clock)."""

    def test_expired_token_fails_validation(self) -> None:
        clock = FakeClock(datetime.now(UTC) - timedelta(minutes=16))
        token = _signer(clock).issue_access_token("acc-1", "a@x.com", [])
        self.assertFalse(_signer().validate(token))

    def test_token_just_inside_lifetime_validates(self) -> None:
        clock = FakeClock(datetime.now(UTC) - timedelta(minutes=14))
        token = _signer(clock).issue_access_token("acc-1", "a@x.com", [])
        self.assertTrue(_signer().validate(token))

    def test_clock_skew_tolerance_is_configurable(self) -> None:
        clock = FakeClock(datetime.now(UTC) - timedelta(minutes=15, seconds=30))
        token = _signer(clock).issue_access_token("acc-1", "a@x.com", [])
        self.assertFalse(_signer().validate(token))
        self.assertTrue(_signer(JWT_CLOCK_SKEW_SECONDS=120).validate(token))

    def test_access_token_expiry_follows_clock(self) -> None:
        start = datetime(2025, 1, 1, tzinfo=UTC)
        self.assertEqual(
            _signer(FakeClock(start)).access_token_expiry(), start + timedelta(minutes=15)
        )

    def test_validation_uses_the_issuing_clock(self) -> None:
        clock = FakeClock(datetime(2025, 1, 1, tzinfo=UTC))
        signer = _signer(clock)
        token = signer.issue_access_token("acc-1", "a@x.com", [])
        self.assertTrue(signer.validate(token))
        clock.advance(minutes=14, seconds=59)
        self.assertTrue(signer.validate(token))
        clock.advance(seconds=1)
        self.assertFalse(signer.validate(token))
        self.assertIsNone(signer.decode_claims(token))
        self.assertEqual(signer.extract_subject_ignoring_expiry(token), "acc-1")

    def test_token_from_the_future_is_rejected(self) -> None:
        clock = FakeClock(datetime(2025, 1, 1, tzinfo=UTC))
        signer = _signer(clock)
        token = signer.issue_access_token("acc-1", "a@x.com", [])
        clock.advance(minutes=-1)
        self.assertFalse(signer.validate(token))
        self.assertIsNone(signer.extract_subject_ignoring_expiry(token))

    def test_returned_expiry_is_the_signed_exp(self) -> None:
        start = datetime(2025, 1, 1, 12, 0, 0, 750000, tzinfo=UTC)
        signer = _signer(FakeClock(start))
        token, expires_at = signer.issue_access_token_with_expiry("acc-1", "a@x.com", [])
        self.assertEqual(expires_at, datetime(2025, 1, 1, 12, 15, tzinfo=UTC))
        self.assertEqual(signer.decode_claims(token)["exp"], int(expires_at.timestamp()))


class TestRejections(unittest.TestCase):
    """Wrong key, issuer, audience, algorithm or garbage input never validate and never raise."""

    def test_wrong_key(self) -> None:
        other = _signer(JWT_SECRET="another-signing-key-0123456789-abcdefgh")
        token = other.issue_access_token("acc-1", "a@x.com", [])
        self.assertFalse(_signer().validate(token))
        self.assertIsNone(_signer().extract_subject_ignoring_expiry(token))

    def test_wrong_issuer_and_audience(self) -> None:
        token = _signer(JWT_ISSUER="someone-else").issue_access_token("acc-1", "a@x.com", [])
        self.assertFalse(_signer().validate(token))
        token = _signer(JWT_AUDIENCE="other-clients").issue_access_token("acc-1", "a@x.com", [])
        self.assertFalse(_signer().validate(token))

    def test_garbage(self) -> None:
        signer = _signer()
        for token in ("", "not-a-jwt", "a.b.c", "eyJhbGciOiJIUzI1NiJ9..", "☃.☃.☃"):
            with self.subTest(token=token):
                self.assertFalse(signer.validate(token))
                self.assertIsNone(signer.extract_subject_ignoring_expiry(token))
                self.assertIsNone(signer.decode_claims(token))

    def test_tampered_payload(self) -> None:
        signer = _signer()
        header, payload, signature = signer.issue_access_token("acc-1", "a@x.com", []).split(".")
        forged_payload = base64.urlsafe_b64encode(b'{"sub":"acc-2"}').rstrip(b"=").decode()
        self.assertFalse(signer.validate(f"{header}.{forged_payload}.{signature}"))

    def test_algorithm_substitution_rejected(self) -> None:
        now = datetime.now(UTC)
        claims = {
            "sub": "acc-1",
            "iss": "identity-tests",
            "aud": "identity-tests-clients",
            "iat": now,
            "exp": now + timedelta(minutes=5),
            "jti": "x",
        }
        signer = _signer()
        hs512 = jwt.encode(claims, "unit-test-signing-key-0123456789-abcdef", algorithm="HS512")
        self.assertIsNone(signer.extract_subject_ignoring_expiry(hs512))
        self.assertFalse(signer.validate(hs512))
        unsigned = jwt.encode(claims, None, algorithm="none")
        self.assertIsNone(signer.extract_subject_ignoring_expiry(unsigned))
        self.assertFalse(signer.validate(unsigned))

    def test_missing_required_claim(self) -> None:
        now = datetime.now(UTC)
        no_jti = jwt.encode(
            {
                "sub": "acc-1",
                "iss": "identity-tests",
                "aud": "identity-tests-clients",
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            "unit-test-signing-key-0123456789-abcdef",
            algorithm="HS256",
        )
        self.assertFalse(_signer().validate(no_jti))


class TestExtractSubjectIgnoringExpiry(unittest.TestCase):
    """The refresh flow can read the subject of an expired but correctly signed token."""

    def test_expired_token_yields_subject(self) -> None:
        clock = FakeClock(datetime.now(UTC) - timedelta(days=2))
        token = _signer(clock).issue_access_token("acc-42", "a@x.com", [])
        signer = _signer()
        self.assertFalse(signer.validate(token))
        self.assertEqual(signer.extract_subject_ignoring_expiry(token), "acc-42")

    def test_valid_token_yields_subject(self) -> None:
        signer = _signer()
        token = signer.issue_access_token("acc-42", "a@x.com", [])
        self.assertEqual(signer.extract_subject_ignoring_expiry(token), "acc-42")


class TestRefreshTokenGeneration(unittest.TestCase):
    """Refresh tokens are standard base64 of 64 random bytes, unique per call."""

    def test_format_and_entropy(self) -> None:
        token = TokenSigner.issue_refresh_token()
        self.assertEqual(len(base64.b64decode(token, validate=True)), REFRESH_TOKEN_BYTES)
        self.assertNotIn(".", token)

    def test_unique(self) -> None:
        tokens = {TokenSigner.issue_refresh_token() for _ in range(50)}
        self.assertEqual(len(tokens), 50)


if __name__ == "__main__":
    unittest.main()
