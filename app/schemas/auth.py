"""
Auth schemas: request bodies and responses for the OTP and token operations.
JSON uses camelCase (countryCode, accessToken); Python code uses snake_case.
"""
import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from app.config import settings

PHONE_PATTERN = re.compile(r"\+?[0-9 -]+")
CODE_PATTERN = re.compile(r"[0-9]{6}")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendOTPRequest(CamelModel):
    phone: str
    country_code: str = settings.default_country_code

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Phone number is required")
        if len(v) > 20 or not PHONE_PATTERN.fullmatch(v) or not any(c.isdigit() for c in v):
            raise ValueError("Invalid phone number format")
        return v

    @field_validator("country_code")
    @classmethod
    def country_code_valid(cls, v: str) -> str:
        v = v.strip()
        if not re.fullmatch(r"\+?[0-9]{1,4}", v):
            raise ValueError("Invalid country code")
        return v


class VerifyOTPRequest(SendOTPRequest):
    code: str

    @field_validator("code")
    @classmethod
    def code_valid(cls, v: str) -> str:
        if not CODE_PATTERN.fullmatch(v):
            raise ValueError("OTP must be 6 digits")
        return v


class RefreshTokenRequest(CamelModel):
    # Optional: in cookie transport mode the token never travels in the body.
    refresh_token: Optional[str] = None


class SendOTPResponse(CamelModel):
    message: str
    phone: str
    expires_at: datetime
    dev_hint: Optional[str] = None


class AuthUserOut(CamelModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    phone: str

    # UUID → str conversion for JSON serialization
    @field_validator("id", mode="before")
    @classmethod
    def uuid_to_str(cls, v) -> str:
        return str(v)


class UserProfileOut(AuthUserOut):
    created_at: datetime


class TokensOut(CamelModel):
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None


class VerifyOTPResponse(CamelModel):
    message: str
    user: AuthUserOut
    tokens: TokensOut
    is_new_user: bool


class MessageResponse(CamelModel):
    message: str
