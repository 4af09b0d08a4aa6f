"""
FastAPI dependencies used across routers.
Keep this file lean: only auth/DB dependencies go here.
Business logic belongs in services/.
"""
import uuid

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.exceptions import CredentialsException
from app.models.user import User
from app.services import token_service, user_service

# auto_error=False so a missing header reaches us and gets our 401 envelope.
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Validates the Bearer access token and returns the authenticated User.

    Checks performed (in order):
    1. Authorization header is present and uses the Bearer scheme
    2. Token is a valid, unexpired JWT signed with our secret key
    3. Token type is 'access' (refresh tokens are opaque and never parse)
    4. 'sub' claim maps to a real user
    """
    if credentials is None or not credentials.credentials:
        raise CredentialsException("Missing or invalid authorization header")

    payload = token_service.verify_access_token(credentials.credentials)

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise CredentialsException()

    user = user_service.find_by_id(db, user_id)
    if user is None:
        raise CredentialsException()

    return user
