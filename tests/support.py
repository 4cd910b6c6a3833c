"""Shared builders for tests: settings, SQLite session factories, clocks and a base case."""

import unittest
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from identity.core.config import Settings
from identity.core.database import make_engine
from identity.models import Base
from identity.services.auth_engine import AuthEngine
from identity.services.results import Success

TEST_JWT_SECRET = "unit-test-signing-key-0123456789-abcdef"
TEST_ENCRYPTION_KEY = "unit-test-encryption-key-0123456789-abcdef"
STRONG_PASSWORD = "P@ssw0rd!"


def make_settings(**overrides: object) -> Settings:
    """Settings isolated from the environment's .env file."""
    values: dict[str, object] = {
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": TEST_JWT_SECRET,
        "JWT_ISSUER": "identity-tests",
        "JWT_AUDIENCE": "identity-tests-clients",
        "ACCESS_TOKEN_EXPIRE_MINUTES": 15,
        "REFRESH_TOKEN_EXPIRE_DAYS": 7,
        "ENCRYPTION_KEY": TEST_ENCRYPTION_KEY,
        "PASSWORD_RESET_TOKEN_EXPIRE_MINUTES": 30,
        "LOCKOUT_ENABLED": True,
        "LOCKOUT_MAX_FAILED_ATTEMPTS": 3,
        "LOCKOUT_MINUTES": 5,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session_factory(url: str = "sqlite://") -> sessionmaker:
    """Fresh schema. In-memory URLs share one connection so every session sees the same data."""
    if url == "sqlite://":
        engine = make_engine(url, poolclass=StaticPool)
    else:
        engine = make_engine(url, connect_args={"timeout": 30})
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False)


class FakeClock:
    """Settable UTC clock for issuance/expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class EngineTestCase(unittest.TestCase):
    """Fresh in-memory database per test; clock starts an hour in the past."""

    def setUp(self) -> None:
        self.settings = make_settings()
        self.Session = make_session_factory()
        self.session = self.Session()
        self.clock = FakeClock(datetime.now(UTC) - timedelta(hours=1))
        self.engine = AuthEngine(self.session, self.settings, clock=self.clock)

    def tearDown(self) -> None:
        self.session.close()
        self.Session.kw["bind"].dispose()

    def register(self, username: str = "alice", email: str = "alice@x.com", **kwargs) -> str:
        password = kwargs.pop("password", STRONG_PASSWORD)
        result = self.engine.register(username, email, password, **kwargs)
        self.assertIsInstance(result, Success, getattr(result, "errors", None))
        return result.value
