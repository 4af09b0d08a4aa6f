"""Pytest configuration shared across the suite."""

import os

# Settings are read once at import time, so the environment is fixed up
# before anything under `app` is imported.
_DEFAULT_ENV_VARS: dict[str, str] = {
    "SECRET_KEY": "test-secret-key",
    "DATABASE_URL": "sqlite://",
    "OTP_MODE": "production",
    "OTP_HASH_ROUNDS": "4",
    "SMS_PROVIDER": "console",
    "RATE_LIMIT_ENABLED": "false",
    "LOG_LEVEL": "WARNING",
}

for key, value in _DEFAULT_ENV_VARS.items():
    os.environ.setdefault(key, value)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import app.models  # noqa: F401
from app.config import settings
from app.core.token_transport import BodyTokenTransport, get_token_transport
from app.database import Base, build_engine, get_db
from app.main import app as fastapi_app
from app.services.sms_service import SMSGateway, get_sms_gateway


class RecordingSMSGateway(SMSGateway):
    """Keeps every code it is asked to deliver instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.delivered = True
        self.error: Exception | None = None

    def send_otp(self, phone: str, code: str) -> bool:
        if self.error is not None:
            raise self.error
        self.sent.append((phone, code))
        return self.delivered

    def last_code(self, phone: str) -> str:
        return [code for sent_phone, code in self.sent if sent_phone == phone][-1]


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sms_gateway() -> RecordingSMSGateway:
    return RecordingSMSGateway()


@pytest.fixture
def dev_mode(monkeypatch):
    monkeypatch.setattr(settings, "otp_mode", "development")


@pytest.fixture
def token_transport():
    return BodyTokenTransport()


@pytest.fixture
def client(session_factory, sms_gateway, token_transport):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_sms_gateway] = lambda: sms_gateway
    fastapi_app.dependency_overrides[get_token_transport] = lambda: token_transport
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()
