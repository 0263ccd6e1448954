"""
tests/conftest.py -- Shared fixtures for authflow tests.

This module provides:
  - settings: explicit Settings instance (no .env needed)
  - clock: FakeClock injected into every flow so TTLs can be crossed instantly
  - mailer: RecordingMailer that keeps every sent code instead of delivering it
  - database / db: isolated in-memory SQLite database and a Session on it
  - services: the flow services wired exactly like the app wires them
  - client: TestClient over create_app() sharing the same database, mailer, clock

In-memory SQLite needs a StaticPool (see authflow.db.database.make_engine):
TestClient runs handlers in a worker thread, and a plain per-connection
:memory: database would look empty from that thread.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

# Settings are read from the environment if anything calls get_settings();
# set the required values before any authflow import.
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef")
os.environ.setdefault("DB_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from authflow.core.config import Settings
from authflow.core.security import PasswordHasher
from authflow.db.database import Database
from authflow.main import create_app
from authflow.models.refresh_token import RefreshToken
from authflow.services import Services, build_services
from authflow.services.mail_service import Mailer
from authflow.utils.email_utils import MailDeliveryError

TEST_SECRET = "test-secret-key-0123456789abcdef"
PASSWORD = "Passw0rd!"
NEW_PASSWORD = "NewPassw0rd!"


class FakeClock:
    """Callable clock; tests move it forward with advance()."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class SentMail:
    kind: str
    email: str
    token: str
    display_name: Optional[str]


class RecordingMailer(Mailer):
    """Mailer that records instead of delivering. Set fail=True to simulate SMTP outage."""

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self.sent: list[SentMail] = []
        self.fail = False

    def _record(self, kind: str, email: str, token: str, display_name: Optional[str]) -> None:
        if self.fail:
            raise MailDeliveryError("SMTP server unavailable")
        self.sent.append(SentMail(kind, email, token, display_name))

    def send_verification_email(self, email: str, token: str, display_name: Optional[str] = None) -> None:
        self._record("verification", email, token, display_name)

    def send_reset_password_email(self, email: str, token: str, display_name: Optional[str] = None) -> None:
        self._record("reset", email, token, display_name)

    def last_token(self, kind: str, email: str) -> str:
        for mail in reversed(self.sent):
            if mail.kind == kind and mail.email == email:
                return mail.token
        raise AssertionError(f"no {kind} mail sent to {email}")

    def count(self, kind: str, email: str) -> int:
        return sum(1 for m in self.sent if m.kind == kind and m.email == email)


def make_settings(**overrides) -> Settings:
    values = {
        "SECRET_KEY": TEST_SECRET,
        "DB_URL": "sqlite://",
        "APP_ENV": "development",
        "MAIL_BACKEND": "console",
    }
    values.update(overrides)
    return Settings(**values)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mailer(settings: Settings) -> RecordingMailer:
    return RecordingMailer(settings)


@pytest.fixture
def database() -> Generator[Database, None, None]:
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db(database: Database) -> Generator[Session, None, None]:
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def services(settings: Settings, mailer: RecordingMailer, clock: FakeClock, hasher: PasswordHasher) -> Services:
    return build_services(settings, mailer=mailer, hasher=hasher, clock=clock)


@pytest.fixture
def client(
    settings: Settings, database: Database, mailer: RecordingMailer, clock: FakeClock
) -> Generator[TestClient, None, None]:
    app = create_app(settings, database=database, mailer=mailer, clock=clock)
    with TestClient(app, raise_server_exceptions=True) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def register_user(services: Services, db: Session, email: str = "a@x.com", password: str = PASSWORD, **names):
    result = services.auth.register(db, email=email, password=password, **names)
    assert result.ok, result.error
    return result.value


def register_verified_user(
    services: Services,
    db: Session,
    mailer: RecordingMailer,
    email: str = "a@x.com",
    password: str = PASSWORD,
):
    user = register_user(services, db, email=email, password=password)
    code = mailer.last_token("verification", email)
    assert services.verification.consume(db, code, email).ok
    return user


def count_refresh_tokens(db: Session, user_id: str) -> int:
    return len(db.scalars(select(RefreshToken.id).where(RefreshToken.user_id == user_id)).all())
