"""
Security utilities: OTP hashing and token primitives.
Uses PyJWT (not python-jose) for access tokens.
"""
import hashlib
import secrets
import jwt
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext
from datetime import timedelta
from app.config import settings
from app.core.timezone import utcnow

# ── OTP Hashing ───────────────────────────────────────────────────────────────
# bcrypt salts every hash and passlib's verify() compares in constant time.
otp_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.otp_hash_rounds,
)


def hash_otp(code: str) -> str:
    return otp_context.hash(code)


def verify_otp_hash(code: str, code_hash: str) -> bool:
    return otp_context.verify(code, code_hash)


# ── Access Tokens (JWT) ───────────────────────────────────────────────────────

def access_token_lifetime_seconds() -> int:
    return settings.access_token_expire_minutes * 60


def create_access_token(user_id: str, phone: str) -> str:
    """
    Short-lived, stateless access token.
    Carries the user id (as 'sub') and phone; never accepted for refresh.
    """
    now = utcnow()
    payload = {
        "sub": user_id,
        "phone": phone,
        "type": "access",         # custom claim to distinguish token types
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict:
    """
    Decodes and validates an access token.
    Raises jwt.exceptions.InvalidTokenError (or subclass) on any failure.
    The caller is responsible for converting this into an HTTPException.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    if payload.get("type") != "access":
        raise InvalidTokenError("Not an access token")
    if not payload.get("sub"):
        raise InvalidTokenError("Missing subject")
    return payload


# ── Refresh Tokens (opaque) ───────────────────────────────────────────────────

def generate_refresh_token() -> str:
    return secrets.token_hex(64)


def hash_refresh_token(token: str) -> str:
    # Refresh tokens are 512 bits of randomness, a fast digest is enough.
    return hashlib.sha256(token.encode()).hexdigest()
