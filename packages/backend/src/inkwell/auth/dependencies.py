"""FastAPI auth dependencies — the authorization gate.

Learn: These are used as Depends() in route handlers (or at the
include_router level) to extract and validate the current identity.

    Unauthenticated → Bearer header present? → token verifies? → Authenticated

The gate is pure token verification. It never touches the database,
so a user deleted after a token was issued stays authenticated until
that token expires (at most the access-token lifetime).
"""

from typing import Optional

from fastapi import Depends, Header, Request

from inkwell.auth.cookies import SessionCookieManager
from inkwell.auth.tokens import IdentityPayload, TokenCodec
from inkwell.errors import Unauthorized


def get_token_codec(request: Request) -> TokenCodec:
    """The process-wide codec built by create_app()."""
    return request.app.state.token_codec


def get_cookie_manager(request: Request) -> SessionCookieManager:
    return request.app.state.cookie_manager


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an exact ``Bearer <token>`` header, else None."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    codec: TokenCodec = Depends(get_token_codec),
) -> IdentityPayload:
    """Require a valid access token (401 otherwise).

    On success the identity is also stored on request.state.identity
    for code that only has the request object.
    """
    token = parse_bearer(authorization)
    if token is None:
        raise Unauthorized("Authentication required")

    identity = codec.verify_access_token(token)
    if identity is None:
        raise Unauthorized("Invalid or expired token")

    request.state.identity = identity
    return identity


# Router-level guard: include_router(..., dependencies=protected)
protected = [Depends(get_current_user)]
