"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (15min), sent as a Bearer header
- Refresh token: long-lived (7 days), lives only in an HTTP-only cookie

Each kind is signed with its OWN secret, so a leaked access token can
never be replayed against /auth/refresh. Both carry the same identity
payload (user id, username, email). The "type" claim is checked too,
and a random "jti" keeps two tokens minted in the same second distinct.

Verification never raises: a bad signature, an expired token or a
malformed string is a normal outcome and yields None.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
import structlog

from inkwell.errors import ConfigurationError

logger = structlog.get_logger()

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class IdentityPayload:
    """The minimal identity carried inside every token."""

    user_id: str
    username: str
    email: str

    def to_claims(self) -> dict:
        return {"sub": self.user_id, "username": self.username, "email": self.email}

    @classmethod
    def from_claims(cls, claims: dict) -> Optional["IdentityPayload"]:
        try:
            user_id, username, email = (
                claims["sub"],
                claims["username"],
                claims["email"],
            )
        except KeyError:
            return None
        if not all(isinstance(v, str) and v for v in (user_id, username, email)):
            return None
        return cls(user_id=user_id, username=username, email=email)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Issues and verifies access/refresh tokens.

    Learn: Secrets are injected, not read from the environment here.
    A missing secret is a configuration error raised by the constructor,
    which the app factory calls once at startup.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not access_secret:
            raise ConfigurationError("Access token secret is not configured")
        if not refresh_secret:
            raise ConfigurationError("Refresh token secret is not configured")
        if access_secret == refresh_secret:
            raise ConfigurationError(
                "Access and refresh tokens must use different secrets"
            )
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock

    @property
    def refresh_max_age(self) -> int:
        """Refresh token lifetime in whole seconds (cookie Max-Age)."""
        return int(self.refresh_ttl.total_seconds())

    # ─── Issue ───────────────────────────────────────────

    def issue_access_token(self, payload: IdentityPayload) -> str:
        return self._encode(payload, ACCESS, self._access_secret, self.access_ttl)

    def issue_refresh_token(self, payload: IdentityPayload) -> str:
        return self._encode(payload, REFRESH, self._refresh_secret, self.refresh_ttl)

    def _encode(
        self,
        payload: IdentityPayload,
        token_type: str,
        secret: str,
        ttl: timedelta,
    ) -> str:
        now = self._clock()
        claims = {
            **payload.to_claims(),
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    # ─── Verify ──────────────────────────────────────────

    def verify_access_token(self, token: str) -> Optional[IdentityPayload]:
        return self._decode(token, ACCESS, self._access_secret)

    def verify_refresh_token(self, token: str) -> Optional[IdentityPayload]:
        return self._decode(token, REFRESH, self._refresh_secret)

    def _decode(
        self, token: str, token_type: str, secret: str
    ) -> Optional[IdentityPayload]:
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("auth.token_expired", token_type=token_type)
            return None
        except jwt.InvalidTokenError as e:
            logger.debug("auth.token_invalid", token_type=token_type, error=str(e))
            return None

        if claims.get("type") != token_type:
            logger.debug("auth.token_wrong_type", expected=token_type)
            return None
        return IdentityPayload.from_claims(claims)
