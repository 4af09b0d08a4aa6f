"""
Periodic storage sweep for auth records.

    python -m app.maintenance

Deletes one-time codes that can no longer verify (expired, verified,
exhausted) and refresh tokens past their expiry. Safe to run from cron at
any interval; nothing depends on it for correctness.
"""
import logging

from app.config import settings
from app.core.logging import configure_logging
from app.database import SessionLocal
from app.services.auth_service import cleanup_auth_records

logger = logging.getLogger("app.maintenance")


def main() -> None:
    configure_logging(settings.log_level)
    db = SessionLocal()
    try:
        removed = cleanup_auth_records(db)
    finally:
        db.close()
    logger.info(
        "Removed %d OTP records and %d refresh tokens",
        removed["otp_records"],
        removed["refresh_tokens"],
    )


if __name__ == "__main__":
    main()
