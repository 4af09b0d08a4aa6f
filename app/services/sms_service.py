"""
SMS delivery for one-time codes.

Gateways share one method, send_otp(phone, code) -> bool:
  - ConsoleSMSGateway: development mode; logs the code, sends nothing.
  - TwilioSMSGateway:  production; POSTs to the Twilio Messages REST API via httpx.

get_sms_gateway() picks the gateway once per process from settings and is
also the FastAPI dependency, so tests swap it with dependency_overrides.
"""
import logging
from functools import lru_cache

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


class SMSGateway:
    def send_otp(self, phone: str, code: str) -> bool:
        raise NotImplementedError


class ConsoleSMSGateway(SMSGateway):
    def send_otp(self, phone: str, code: str) -> bool:
        logger.info("[DEV MODE] OTP for %s: %s (bypass code: %s)", phone, code, settings.otp_bypass_code)
        return True


class TwilioSMSGateway(SMSGateway):
    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout
        self._client = client

    def _post(self, url: str, data: dict) -> httpx.Response:
        auth = (self.account_sid, self.auth_token)
        if self._client is not None:
            return self._client.post(url, data=data, auth=auth, timeout=self.timeout)
        return httpx.post(url, data=data, auth=auth, timeout=self.timeout)

    def send_otp(self, phone: str, code: str) -> bool:
        if not (self.account_sid and self.auth_token and self.from_number):
            raise RuntimeError("Twilio SMS not configured. Set TWILIO_* environment variables.")

        response = self._post(
            TWILIO_MESSAGES_URL.format(sid=self.account_sid),
            {
                "To": phone,
                "From": self.from_number,
                "Body": f"Your verification code is: {code}",
            },
        )
        if response.status_code in (200, 201):
            logger.info("OTP SMS queued for %s", phone)
            return True

        logger.warning("Twilio OTP failed [%s]: %s", response.status_code, response.text)
        return False


def build_sms_gateway() -> SMSGateway:
    if settings.is_otp_dev_mode:
        return ConsoleSMSGateway()

    provider = settings.sms_provider.lower()
    if provider == "twilio":
        return TwilioSMSGateway(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_from_number,
            timeout=settings.sms_timeout_seconds,
        )
    if provider != "console":
        logger.warning("Unknown SMS provider %r, falling back to console", provider)
    return ConsoleSMSGateway()


@lru_cache()
def get_sms_gateway() -> SMSGateway:
    return build_sms_gateway()
