from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Literal, Optional


class Settings(BaseSettings):
    # ── App ───────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:5173"
    rate_limit_enabled: bool = True

    # ── Database ──────────────────────────────────────────────
    # DATABASE_URL wins when set; otherwise the parts below build a Postgres URL.
    database_url: Optional[str] = None
    database_hostname: str = "localhost"
    database_port: str = "5432"
    database_password: str = ""
    database_name: str = "worksite"
    database_username: str = "postgres"

    # ── JWT ───────────────────────────────────────────────────
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7

    # ── OTP ───────────────────────────────────────────────────
    otp_mode: Literal["development", "production"] = "development"
    otp_expiry_minutes: int = 5
    otp_max_attempts: int = 3
    otp_bypass_code: str = "123456"
    otp_hash_rounds: int = 10
    default_country_code: str = "+91"

    # ── SMS ───────────────────────────────────────────────────
    sms_provider: str = "twilio"
    sms_timeout_seconds: float = 10.0
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""

    # ── Refresh token transport ───────────────────────────────
    refresh_token_transport: Literal["body", "cookie"] = "body"
    refresh_cookie_name: str = "refresh_token"
    refresh_cookie_path: str = "/auth"
    refresh_cookie_secure: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        """Split comma-separated origins into a list, stripping whitespace."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.database_username}:{self.database_password}"
            f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
        )

    @property
    def is_otp_dev_mode(self) -> bool:
        return self.otp_mode == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    class Config:
        env_file = ".env"
        # Case-insensitive so OTP_MODE and otp_mode both work
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings loader: reads .env once and reuses.
    Use this everywhere instead of instantiating Settings() directly.
    """
    return Settings()


# Module-level singleton for convenience imports
settings = get_settings()
