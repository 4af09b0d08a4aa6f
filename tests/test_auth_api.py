import asyncio
import threading
import time

import httpx
import pytest

from app.config import Settings, settings
from app.main import app as fastapi_app
from app.main import check_settings
from app.models.otp import OTPVerification
from app.models.user import User
from app.services.sms_service import SMSGateway, get_sms_gateway

PHONE_BODY = {"phone": "555-123-4567", "countryCode": "+1"}
PHONE = "+15551234567"
WRONG_CODE = "000000"


def _send(client) -> dict:
    response = client.post("/auth/send-otp", json=PHONE_BODY)
    assert response.status_code == 200, response.text
    return response.json()


def _verify(client, code: str):
    return client.post("/auth/verify-otp", json={**PHONE_BODY, "code": code})


def _login(client, sms_gateway) -> dict:
    _send(client)
    response = _verify(client, sms_gateway.last_code(PHONE))
    assert response.status_code == 201, response.text
    return response.json()


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ── send-otp ──────────────────────────────────────────────────────────────────

def test_send_otp_normalizes_phone(client, sms_gateway) -> None:
    body = _send(client)

    assert body["message"] == "OTP sent successfully"
    assert body["phone"] == PHONE
    assert "expiresAt" in body
    assert "devHint" not in body
    assert sms_gateway.sent[0][0] == PHONE


def test_send_otp_dev_hint_in_development_mode(client, dev_mode) -> None:
    body = _send(client)

    assert body["devHint"] == f"Use code {settings.otp_bypass_code} for testing"


def test_send_otp_default_country_code(client, sms_gateway) -> None:
    response = client.post("/auth/send-otp", json={"phone": "98765 43210"})

    assert response.status_code == 200
    assert response.json()["phone"] == f"{settings.default_country_code}9876543210"


@pytest.mark.parametrize("phone", ["", "call-me", "+1 (555) 123", "1" * 21, "---", "555-123-4567\n1"])
def test_send_otp_rejects_malformed_phone(client, sms_gateway, phone) -> None:
    response = client.post("/auth/send-otp", json={"phone": phone, "countryCode": "+1"})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert sms_gateway.sent == []


def test_send_otp_delivery_failure_is_generic(client, sms_gateway) -> None:
    sms_gateway.error = RuntimeError("Twilio SMS not configured")

    response = client.post("/auth/send-otp", json=PHONE_BODY)

    assert response.status_code == 500
    assert response.json()["error"] == {"message": "Failed to send OTP", "code": "SEND_OTP_FAILED"}


class BlockingSMSGateway(SMSGateway):
    """Holds delivery open until released, like a slow SMS provider."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()

    def send_otp(self, phone: str, code: str) -> bool:
        self.started.set()
        self.release.wait(timeout=3)
        return True


def test_slow_sms_delivery_does_not_block_other_requests(client) -> None:
    gateway = BlockingSMSGateway()
    fastapi_app.dependency_overrides[get_sms_gateway] = lambda: gateway

    async def send_while_checking_health():
        transport = httpx.ASGITransport(app=fastapi_app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            started = time.monotonic()
            send = asyncio.create_task(http.post("/auth/send-otp", json=PHONE_BODY))
            await asyncio.to_thread(gateway.started.wait, 3)
            health = await http.get("/health")
            health_elapsed = time.monotonic() - started
            gateway.release.set()
            return await send, health, health_elapsed

    sent, health, health_elapsed = asyncio.run(send_while_checking_health())

    assert health.status_code == 200
    assert health_elapsed < 1.5
    assert sent.status_code == 200


# ── verify-otp ────────────────────────────────────────────────────────────────

def test_verify_otp_creates_user_and_issues_tokens(client, sms_gateway, session_factory) -> None:
    body = _login(client, sms_gateway)

    assert body["isNewUser"] is True
    assert body["message"] == "Account created successfully"
    assert body["user"]["phone"] == PHONE
    assert body["user"]["name"] == "User"
    assert body["tokens"]["expiresIn"] == settings.access_token_expire_minutes * 60
    assert body["tokens"]["accessToken"]
    assert body["tokens"]["refreshToken"]

    with session_factory() as db:
        assert db.query(User).filter(User.phone == PHONE).count() == 1


def test_verify_otp_existing_user_logs_in(client, sms_gateway) -> None:
    first = _login(client, sms_gateway)
    second = _login(client, sms_gateway)

    assert second["isNewUser"] is False
    assert second["message"] == "Login successful"
    assert second["user"]["id"] == first["user"]["id"]


@pytest.mark.parametrize("code", ["12ab56", "12345", "1234567", "123456\n", " 123456"])
def test_verify_otp_rejects_malformed_code(client, sms_gateway, session_factory, code) -> None:
    _send(client)

    response = _verify(client, code)

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    with session_factory() as session:
        record = session.query(OTPVerification).filter_by(phone=PHONE).one()
        assert record.attempts == 0


def test_verify_otp_attempt_limit(client, sms_gateway, session_factory) -> None:
    _send(client)
    code = sms_gateway.last_code(PHONE)

    for remaining in (2, 1, 0):
        response = _verify(client, WRONG_CODE)
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "OTP_INVALID"
        assert error["details"] == {"remainingAttempts": remaining}

    response = _verify(client, code)
    assert response.status_code == 429
    assert response.json()["error"]["code"] == "OTP_TOO_MANY_ATTEMPTS"

    with session_factory() as db:
        assert db.query(OTPVerification).one().attempts == 3
        assert db.query(User).count() == 0


def test_verify_otp_without_send(client) -> None:
    response = _verify(client, "482913")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "OTP_EXPIRED"


def test_verify_otp_twice_with_same_code(client, sms_gateway) -> None:
    _login(client, sms_gateway)

    response = _verify(client, sms_gateway.last_code(PHONE))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "OTP_EXPIRED"


def test_verify_otp_bypass_code_in_development_mode(client, dev_mode) -> None:
    response = _verify(client, settings.otp_bypass_code)

    assert response.status_code == 201
    assert response.json()["isNewUser"] is True


# ── refresh / logout ──────────────────────────────────────────────────────────

def test_refresh_rotates_tokens(client, sms_gateway) -> None:
    tokens = _login(client, sms_gateway)["tokens"]

    response = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

    assert response.status_code == 200
    rotated = response.json()
    assert rotated["refreshToken"] != tokens["refreshToken"]
    assert client.get("/auth/me", headers=_bearer(rotated["accessToken"])).status_code == 200

    replay = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert replay.status_code == 401
    assert replay.json()["error"]["code"] == "INVALID_REFRESH_TOKEN"


def test_refresh_without_token(client) -> None:
    response = client.post("/auth/refresh")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_REFRESH_TOKEN"


def test_access_token_cannot_refresh(client, sms_gateway) -> None:
    tokens = _login(client, sms_gateway)["tokens"]

    response = client.post("/auth/refresh", json={"refreshToken": tokens["accessToken"]})

    assert response.status_code == 401


def test_logout_revokes_refresh_token(client, sms_gateway) -> None:
    tokens = _login(client, sms_gateway)["tokens"]

    response = client.post("/auth/logout", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 200
    assert response.json() == {"message": "Logged out successfully"}

    again = client.post("/auth/logout", json={"refreshToken": tokens["refreshToken"]})
    assert again.status_code == 200

    refresh = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert refresh.status_code == 401


def test_logout_all_revokes_every_session(client, sms_gateway) -> None:
    first = _login(client, sms_gateway)["tokens"]
    second = _login(client, sms_gateway)["tokens"]

    response = client.post("/auth/logout-all", headers=_bearer(second["accessToken"]))
    assert response.status_code == 200

    for tokens in (first, second):
        refresh = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert refresh.status_code == 401


# ── me ────────────────────────────────────────────────────────────────────────

def test_me_returns_profile(client, sms_gateway) -> None:
    body = _login(client, sms_gateway)

    response = client.get("/auth/me", headers=_bearer(body["tokens"]["accessToken"]))

    assert response.status_code == 200
    profile = response.json()
    assert profile["id"] == body["user"]["id"]
    assert profile["phone"] == PHONE
    assert profile["name"] == "User"
    assert "createdAt" in profile


def test_me_requires_access_token(client, sms_gateway) -> None:
    tokens = _login(client, sms_gateway)["tokens"]

    missing = client.get("/auth/me")
    assert missing.status_code == 401
    assert missing.json()["error"]["code"] == "UNAUTHORIZED"

    with_refresh = client.get("/auth/me", headers=_bearer(tokens["refreshToken"]))
    assert with_refresh.status_code == 401


# ── startup ───────────────────────────────────────────────────────────────────

def test_production_refuses_development_otp_mode() -> None:
    with pytest.raises(RuntimeError):
        check_settings(Settings(secret_key="k", environment="production", otp_mode="development"))

    check_settings(Settings(secret_key="k", environment="production", otp_mode="production"))
