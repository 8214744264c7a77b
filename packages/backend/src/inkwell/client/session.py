"""Client-side session store.

Learn: The counterpart of the server's session flows, for Python
callers (CLI, scripts, service-to-service tests). It mirrors what the
browser does:

- the access token lives only in this object's memory;
- the refresh token lives only in the httpx cookie jar, which this
  class never reads, so the cookie is the durable session anchor;
- an authenticated call that gets a 401 triggers exactly one refresh
  and one retry; a second failure logs the client out and raises.

State changes are published as a single immutable SessionState, so a
reader never sees a token without a user or a user without a token.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

logger = structlog.get_logger()

DEFAULT_API_URL = "http://localhost:8000/api/v1"


class SessionError(Exception):
    """A session call was answered with an error status."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


class SessionExpired(SessionError):
    """Refresh failed or the retried call was still unauthorized."""


@dataclass(frozen=True)
class SessionState:
    access_token: Optional[str] = None
    user: Optional[dict[str, Any]] = None


LOGGED_OUT = SessionState()


def _detail(response: httpx.Response) -> str:
    try:
        return str(response.json().get("detail", response.reason_phrase))
    except ValueError:
        return response.reason_phrase


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _raise_for_status(response: httpx.Response, *, expire_on_401: bool = True) -> None:
    if response.is_success:
        return
    if expire_on_401 and response.status_code == 401:
        raise SessionExpired(response.status_code, _detail(response))
    raise SessionError(response.status_code, _detail(response))


def _payload(response: httpx.Response, key: str) -> Any:
    """Pull one field out of a success body; anything else is a SessionError."""
    try:
        value = response.json()[key]
    except (ValueError, KeyError, TypeError):
        value = None
    if not value:
        raise SessionError(response.status_code, f"Malformed response: no {key}")
    return value


def _log_refresh_outcome(task: "asyncio.Future[str]") -> None:
    # Marks the exception retrieved when every waiter was cancelled
    if not task.cancelled() and task.exception() is not None:
        logger.debug("client.refresh_failed", error=str(task.exception()))


class SessionClient:
    """Holds the in-memory access token and refreshes it via the cookie."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url, transport=transport, timeout=timeout
        )
        self._state = LOGGED_OUT
        self._refreshing: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "SessionClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ─── State ──────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def access_token(self) -> Optional[str]:
        return self._state.access_token

    @property
    def user(self) -> Optional[dict[str, Any]]:
        return self._state.user

    @property
    def is_authenticated(self) -> bool:
        return self._state.user is not None

    def _logged_out(self) -> None:
        self._state = LOGGED_OUT

    # ─── Session flows ──────────────────────────────────

    async def initialize(self) -> bool:
        """Resume a session from the cookie jar, if there is one.

        No session is the common case, so every failure here just
        leaves the client logged out.
        """
        # Start from nothing so the refresh re-reads the user from /auth/me
        self._logged_out()
        try:
            await self._refresh_token()
        except (SessionError, httpx.HTTPError) as e:
            logger.debug("client.no_session", error=str(e))
            return False
        return True

    async def login(self, email: str, password: str) -> dict[str, Any]:
        return await self._start(
            "/auth/login", {"email": email, "password": password}
        )

    async def register(self, username: str, email: str, password: str) -> dict[str, Any]:
        return await self._start(
            "/auth/register",
            {"username": username, "email": email, "password": password},
        )

    async def refresh(self) -> str:
        """Mint a new access token from the cookie. Logs out on failure."""
        return await self._refresh_token()

    async def logout(self) -> None:
        """Clear the server cookie; local state is cleared regardless."""
        try:
            response = await self._http.post("/auth/logout")
            _raise_for_status(response)
        finally:
            self._logged_out()

    async def _start(self, path: str, body: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self._http.post(path, json=body)
            # 401 here means bad credentials, not an expired session
            _raise_for_status(response, expire_on_401=False)
            token = _payload(response, "accessToken")
            user = await self._fetch_me(token)
        except Exception:
            self._logged_out()
            raise
        self._state = SessionState(access_token=token, user=user)
        logger.debug("client.session_started", username=user.get("username"))
        return user

    # ─── Authenticated calls ────────────────────────────

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request, refreshing once on 401.

        Non-401 responses are returned as-is for the caller to inspect.
        """
        token = self._state.access_token
        if token:
            response = await self._send(method, url, token, **kwargs)
            if response.status_code != 401:
                return response

        try:
            token = await self.refresh()
        except SessionError as e:
            raise SessionExpired(e.status_code, e.detail) from e

        response = await self._send(method, url, token, **kwargs)
        if response.status_code == 401:
            self._logged_out()
            raise SessionExpired(401, _detail(response))
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def _send(self, method: str, url: str, token: str, **kwargs: Any) -> httpx.Response:
        headers = {**(kwargs.pop("headers", None) or {}), **_bearer(token)}
        return await self._http.request(method, url, headers=headers, **kwargs)

    # ─── Internals ──────────────────────────────────────

    async def _refresh_token(self) -> str:
        """Call /auth/refresh, sharing one in-flight call between callers.

        Learn: Awaiting a Task directly means cancelling one waiter cancels
        the Task for everybody. asyncio.shield() keeps the shared refresh
        running when a single caller goes away, and because the refresh
        commits state itself, it still lands if nobody is left waiting.
        """
        if self._refreshing is None or self._refreshing.done():
            self._refreshing = asyncio.ensure_future(self._do_refresh())
            self._refreshing.add_done_callback(_log_refresh_outcome)
        return await asyncio.shield(self._refreshing)

    async def _do_refresh(self) -> str:
        try:
            response = await self._http.post("/auth/refresh")
            _raise_for_status(response)
            token = _payload(response, "accessToken")
            user = self._state.user or await self._fetch_me(token)
        except Exception:
            self._logged_out()
            raise
        self._state = SessionState(access_token=token, user=user)
        return token

    async def _fetch_me(self, token: str) -> dict[str, Any]:
        response = await self._http.get("/auth/me", headers=_bearer(token))
        _raise_for_status(response)
        return _payload(response, "user")
