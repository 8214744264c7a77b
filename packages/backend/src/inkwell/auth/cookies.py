"""Refresh-token cookie handling.

Learn: The refresh token never appears in a response body. It rides in
a cookie the browser sends back automatically but page scripts cannot
read (HttpOnly). SameSite=strict keeps it off cross-site requests, and
Secure is switched on in production so it never crosses plain HTTP.
"""

from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

REFRESH_COOKIE_NAME = "refresh_token"


class SessionCookieManager:
    """Set, read, and clear the refresh-token cookie."""

    def __init__(self, max_age: int, secure: bool = False):
        self.max_age = max_age
        self.secure = secure

    def set_session_cookie(self, response: Response, refresh_token: str) -> None:
        self._write(response, refresh_token, self.max_age)

    def get_session_cookie(self, request: Request) -> Optional[str]:
        return request.cookies.get(REFRESH_COOKIE_NAME) or None

    def clear_session_cookie(self, response: Response) -> None:
        """Overwrite with an empty, already-expired cookie."""
        self._write(response, "", 0)

    def _write(self, response: Response, value: str, max_age: int) -> None:
        response.set_cookie(
            REFRESH_COOKIE_NAME,
            value,
            max_age=max_age,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite="strict",
        )
