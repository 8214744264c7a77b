"""Session service — login, register, refresh and logout flows.

Learn: Each flow is all-or-nothing from the caller's point of view.
Every check and every database call happens first; the refresh cookie
is written as the very last step. If anything fails along the way the
exception propagates and the response carries no cookie and no token.

Refresh does full rotation: a brand-new refresh token is minted on
every call from the user's *current* username/email, so a renamed user
gets fresh claims without logging in again.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from starlette.responses import Response

from inkwell.auth.cookies import SessionCookieManager
from inkwell.auth.tokens import IdentityPayload, TokenCodec
from inkwell.db.models import User
from inkwell.errors import (
    InvalidCredentials,
    RefreshTokenInvalid,
    RefreshTokenMissing,
    Unauthorized,
)
from inkwell.services.user_service import UserService

logger = structlog.get_logger()


@dataclass(frozen=True)
class IssuedSession:
    """What a successful login/register/refresh hands back to the route."""

    access_token: str
    user: User


def identity_for(user: User) -> IdentityPayload:
    return IdentityPayload(
        user_id=str(user.id), username=user.username, email=user.email
    )


class SessionService:
    """Orchestrates TokenCodec + SessionCookieManager + UserService."""

    def __init__(
        self,
        users: UserService,
        codec: TokenCodec,
        cookies: SessionCookieManager,
    ):
        self.users = users
        self.codec = codec
        self.cookies = cookies

    async def login(self, response: Response, email: str, password: str) -> IssuedSession:
        user = await self.users.check_credentials(email, password)
        if user is None:
            # Same error for "no such user" and "wrong password"
            logger.info("auth.login_failed")
            raise InvalidCredentials()

        session = self._start(response, user)
        logger.info("auth.login_ok", user_id=str(user.id))
        return session

    async def register(
        self, response: Response, username: str, email: str, password: str
    ) -> IssuedSession:
        user = await self.users.create_user(username, email, password)
        session = self._start(response, user)
        logger.info("auth.register_ok", user_id=str(user.id), username=user.username)
        return session

    async def refresh(self, response: Response, refresh_token: Optional[str]) -> IssuedSession:
        if not refresh_token:
            logger.info("auth.refresh_failed", reason="missing_cookie")
            raise RefreshTokenMissing()

        identity = self.codec.verify_refresh_token(refresh_token)
        if identity is None:
            logger.info("auth.refresh_failed", reason="invalid_token")
            raise RefreshTokenInvalid()

        user = await self.users.get_by_id(identity.user_id)
        if user is None:
            logger.info("auth.refresh_failed", reason="unknown_user", user_id=identity.user_id)
            raise Unauthorized("User not found")

        session = self._start(response, user)
        logger.info("auth.refresh_ok", user_id=str(user.id))
        return session

    def logout(self, response: Response) -> None:
        """Clear the refresh cookie. Idempotent."""
        self.cookies.clear_session_cookie(response)
        logger.info("auth.logout")

    def _start(self, response: Response, user: User) -> IssuedSession:
        """Issue both tokens for one identity and commit the cookie."""
        identity = identity_for(user)
        access_token = self.codec.issue_access_token(identity)
        refresh_token = self.codec.issue_refresh_token(identity)
        self.cookies.set_session_cookie(response, refresh_token)
        return IssuedSession(access_token=access_token, user=user)
