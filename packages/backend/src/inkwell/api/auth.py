"""Auth API — registration, login, refresh, logout, current user.

Learn: Routes for the session lifecycle:
- POST /auth/register → create account, start a session (201)
- POST /auth/login → email/password → access token + refresh cookie
- POST /auth/refresh → refresh cookie → new access token + rotated cookie
- POST /auth/logout → clear the refresh cookie
- GET /auth/me → current user (Bearer access token)

Routes handle HTTP concerns (status codes, the Response the cookie is
written to); SessionService handles the flows.
"""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.auth.cookies import SessionCookieManager
from inkwell.auth.dependencies import (
    get_cookie_manager,
    get_current_user,
    get_token_codec,
)
from inkwell.auth.tokens import IdentityPayload, TokenCodec
from inkwell.db.engine import get_db
from inkwell.errors import NotFound
from inkwell.schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    SessionResponse,
    UserRead,
    UserSummary,
)
from inkwell.services.session_service import IssuedSession, SessionService
from inkwell.services.user_service import UserService

router = APIRouter(prefix="/auth")


def _users(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


def _svc(
    users: UserService = Depends(_users),
    codec: TokenCodec = Depends(get_token_codec),
    cookies: SessionCookieManager = Depends(get_cookie_manager),
) -> SessionService:
    return SessionService(users, codec, cookies)


def _session_response(session: IssuedSession) -> SessionResponse:
    return SessionResponse(
        access_token=session.access_token,
        user=UserSummary.model_validate(session.user),
    )


@router.post("/register", response_model=SessionResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    svc: SessionService = Depends(_svc),
):
    """Create a new user account and log it in."""
    session = await svc.register(response, body.username, body.email, body.password)
    return _session_response(session)


@router.post("/login", response_model=SessionResponse)
async def login(
    body: LoginRequest,
    response: Response,
    svc: SessionService = Depends(_svc),
):
    """Login with email and password."""
    session = await svc.login(response, body.email, body.password)
    return _session_response(session)


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    request: Request,
    response: Response,
    svc: SessionService = Depends(_svc),
):
    """Exchange the refresh cookie for a new access token (and cookie)."""
    token = svc.cookies.get_session_cookie(request)
    session = await svc.refresh(response, token)
    return AccessTokenResponse(access_token=session.access_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    svc: SessionService = Depends(_svc),
):
    """Clear the refresh cookie. Succeeds even without a session."""
    svc.logout(response)
    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=MeResponse)
async def get_me(
    identity: IdentityPayload = Depends(get_current_user),
    users: UserService = Depends(_users),
):
    """Get the current authenticated user's info."""
    user = await users.get_by_id(identity.user_id)
    if user is None:
        raise NotFound("User not found")
    return MeResponse(user=UserRead.model_validate(user))
