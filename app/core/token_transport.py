"""
Where the refresh token travels between client and API.

One strategy is chosen at startup from REFRESH_TOKEN_TRANSPORT:

  body    The refresh token is returned in JSON responses and read back from
          the request body ({"refreshToken": "..."}).
  cookie  The refresh token lives in an HttpOnly, SameSite=Strict cookie
          scoped to the auth path. It never appears in a JSON body.

The access token always goes in the response body and comes back in the
Authorization header; it is not handled here.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Request, Response

from app.config import settings


class RefreshTokenTransport:
    def read(self, request: Request, body_token: Optional[str]) -> Optional[str]:
        raise NotImplementedError

    def write(self, response: Response, payload: dict, refresh_token: str) -> dict:
        """Attach the token to the response and return the (possibly extended) payload."""
        raise NotImplementedError

    def clear(self, response: Response) -> None:
        pass


class BodyTokenTransport(RefreshTokenTransport):
    def read(self, request: Request, body_token: Optional[str]) -> Optional[str]:
        return body_token

    def write(self, response: Response, payload: dict, refresh_token: str) -> dict:
        return {**payload, "refreshToken": refresh_token}


class CookieTokenTransport(RefreshTokenTransport):
    def __init__(self, cookie_name: str, path: str, secure: bool, max_age: int):
        self.cookie_name = cookie_name
        self.path = path
        self.secure = secure
        self.max_age = max_age

    def read(self, request: Request, body_token: Optional[str]) -> Optional[str]:
        return request.cookies.get(self.cookie_name)

    def write(self, response: Response, payload: dict, refresh_token: str) -> dict:
        response.set_cookie(
            key=self.cookie_name,
            value=refresh_token,
            max_age=self.max_age,
            path=self.path,
            httponly=True,
            secure=self.secure,
            samesite="strict",
        )
        return payload

    def clear(self, response: Response) -> None:
        response.delete_cookie(
            key=self.cookie_name,
            path=self.path,
            httponly=True,
            secure=self.secure,
            samesite="strict",
        )


def build_token_transport() -> RefreshTokenTransport:
    if settings.refresh_token_transport == "cookie":
        return CookieTokenTransport(
            cookie_name=settings.refresh_cookie_name,
            path=settings.refresh_cookie_path,
            secure=settings.refresh_cookie_secure,
            max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        )
    return BodyTokenTransport()


@lru_cache()
def get_token_transport() -> RefreshTokenTransport:
    return build_token_transport()
