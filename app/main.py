"""
Application entry point.

Run locally:
    uvicorn app.main:app --reload --port 8000

API docs available at:
    http://localhost:8000/docs   (Swagger UI)
    http://localhost:8000/redoc  (ReDoc)
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import Settings, settings
from app.core.logging import configure_logging
from app.core.rate_limiter import limiter
from app.core.responses import register_exception_handlers
from app.routers import auth

logger = logging.getLogger(__name__)


def check_settings(config: Settings) -> None:
    """Refuse to boot a production deployment with the OTP bypass code live."""
    if config.is_production and config.is_otp_dev_mode:
        raise RuntimeError("OTP_MODE=development is not allowed when ENVIRONMENT=production")


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    check_settings(settings)

    app = FastAPI(
        title="Worksite Auth API",
        description=(
            "Phone OTP authentication for the Worksite construction-management platform. "
            "Issues short-lived access tokens and rotating refresh tokens."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Errors ────────────────────────────────────────────────────────────────
    register_exception_handlers(app)

    # ── Rate Limiter ──────────────────────────────────────────────────────────
    # Attach limiter to app state (required by slowapi)
    # Register the 429 handler so exceeded limits return proper JSON
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ── CORS ──────────────────────────────────────────────────────────────────
    # allow_credentials is required for the cookie refresh-token transport.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(auth.router, prefix="/auth", tags=["Auth"])

    # ── Health Check ──────────────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    def health_check():
        """Returns 200 if the application is running."""
        return {"status": "ok", "version": "1.0.0"}

    logger.info(
        "Auth API ready (otp_mode=%s, refresh_transport=%s)",
        settings.otp_mode,
        settings.refresh_token_transport,
    )
    return app


app = create_app()
