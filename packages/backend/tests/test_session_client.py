"""SessionClient tests.

Learn: Two layers.
1. Against the real app (ASGITransport): the full register → me →
   refresh → logout cycle with the refresh token riding in the cookie jar.
2. Against httpx.MockTransport: a scripted backend that counts calls,
   to pin down "exactly one refresh, exactly one retry" and the
   collapsing of concurrent refreshes.
"""

import asyncio
import uuid

import httpx
import pytest
import pytest_asyncio

from inkwell.client.session import SessionClient, SessionError, SessionExpired

USER = {"id": "u-1", "username": "carol", "email": "carol@example.com", "createdAt": "2026-01-01T00:00:00Z"}
USER_BODY = {"user": USER}


def _creds() -> dict:
    suffix = uuid.uuid4().hex[:8]
    return {
        "username": f"sc{suffix}",
        "email": f"sc-{suffix}@example.com",
        "password": "password_123",
    }


# ═══════════════════════════════════════════════════════════
# Against the real app
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_populates_state(session_client):
    creds = _creds()
    user = await session_client.register(**creds)

    assert session_client.is_authenticated
    assert session_client.access_token
    assert user["username"] == creds["username"]
    assert session_client.user == user
    assert "createdAt" in user


@pytest.mark.asyncio
async def test_initialize_without_session_is_quiet(session_client):
    assert await session_client.initialize() is False
    assert not session_client.is_authenticated
    assert session_client.access_token is None


@pytest.mark.asyncio
async def test_initialize_resumes_from_cookie(session_client):
    creds = _creds()
    await session_client.register(**creds)
    first_token = session_client.access_token

    assert await session_client.initialize() is True
    assert session_client.is_authenticated
    assert session_client.user["email"] == creds["email"]
    assert session_client.access_token != first_token


@pytest.mark.asyncio
async def test_login_and_authenticated_request(session_client):
    creds = _creds()
    await session_client.register(**creds)
    await session_client.logout()

    await session_client.login(creds["email"], creds["password"])
    r = await session_client.get("/auth/me")
    assert r.status_code == 200
    assert r.json()["user"]["username"] == creds["username"]


@pytest.mark.asyncio
async def test_login_bad_credentials(session_client):
    with pytest.raises(SessionError) as exc_info:
        await session_client.login("nobody@example.com", "whatever")
    assert exc_info.value.status_code == 401
    assert not isinstance(exc_info.value, SessionExpired)
    assert not session_client.is_authenticated


@pytest.mark.asyncio
async def test_register_conflict(session_client):
    creds = _creds()
    await session_client.register(**creds)
    with pytest.raises(SessionError) as exc_info:
        await session_client.register(**creds)
    assert exc_info.value.status_code == 409
    assert not session_client.is_authenticated


@pytest.mark.asyncio
async def test_logout_then_refresh_fails(session_client):
    await session_client.register(**_creds())
    await session_client.logout()

    assert not session_client.is_authenticated
    with pytest.raises(SessionExpired):
        await session_client.refresh()


# ═══════════════════════════════════════════════════════════
# Against a scripted backend
# ═══════════════════════════════════════════════════════════


class FakeBackend:
    """Minimal auth API: tokens are "t1", "t2", ...; only the latest is valid."""

    def __init__(self, refresh_ok: bool = True, posts_always_401: bool = False):
        self.refresh_ok = refresh_ok
        self.posts_always_401 = posts_always_401
        self.valid_token = "t0"
        self.calls: dict[str, int] = {}
        self.logout_status = 200
        self.refresh_text: str | None = None
        self.me_body: dict | None = None
        self.last_posts_headers: httpx.Headers | None = None

    def _auth_ok(self, request: httpx.Request) -> bool:
        return request.headers.get("Authorization") == f"Bearer {self.valid_token}"

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/v1")
        self.calls[path] = self.calls.get(path, 0) + 1

        if path == "/auth/login":
            return httpx.Response(200, json={"accessToken": self.valid_token, "user": USER})
        if path == "/auth/refresh":
            await asyncio.sleep(0.05)
            if self.refresh_text is not None:
                return httpx.Response(200, text=self.refresh_text)
            if not self.refresh_ok:
                return httpx.Response(401, json={"detail": "Refresh token not found"})
            self.valid_token = f"t{self.calls[path]}"
            return httpx.Response(200, json={"accessToken": self.valid_token})
        if path == "/auth/logout":
            return httpx.Response(self.logout_status, json={"message": "bye"})
        if path == "/auth/me":
            if not self._auth_ok(request):
                return httpx.Response(401, json={"detail": "Invalid or expired token"})
            return httpx.Response(200, json=USER_BODY if self.me_body is None else self.me_body)
        if path == "/posts":
            self.last_posts_headers = request.headers
            if self.posts_always_401 or not self._auth_ok(request):
                return httpx.Response(401, json={"detail": "Invalid or expired token"})
            return httpx.Response(200, json={"posts": []})
        return httpx.Response(404, json={"detail": "Not found"})

    def expire_access_token(self) -> None:
        self.valid_token = "rotated-away"


@pytest.fixture()
def fake():
    return FakeBackend()


@pytest_asyncio.fixture()
async def scripted(fake):
    async with SessionClient(
        "http://api.test/api/v1", transport=httpx.MockTransport(fake)
    ) as sc:
        await sc.login("carol@example.com", "pw")
        yield sc


@pytest.mark.asyncio
async def test_401_triggers_one_refresh_and_one_retry(scripted, fake):
    fake.expire_access_token()

    r = await scripted.get("/posts")

    assert r.status_code == 200
    assert fake.calls["/auth/refresh"] == 1
    assert fake.calls["/posts"] == 2
    assert scripted.access_token == fake.valid_token
    assert scripted.user == USER


@pytest.mark.asyncio
async def test_second_401_logs_out(scripted, fake):
    fake.posts_always_401 = True

    with pytest.raises(SessionExpired):
        await scripted.get("/posts")

    assert fake.calls["/auth/refresh"] == 1
    assert fake.calls["/posts"] == 2
    assert not scripted.is_authenticated
    assert scripted.access_token is None


@pytest.mark.asyncio
async def test_failed_refresh_logs_out_without_retry(scripted, fake):
    fake.expire_access_token()
    fake.refresh_ok = False

    with pytest.raises(SessionExpired):
        await scripted.get("/posts")

    assert fake.calls["/auth/refresh"] == 1
    assert fake.calls["/posts"] == 1
    assert not scripted.is_authenticated


@pytest.mark.asyncio
async def test_non_401_errors_are_returned(scripted, fake):
    r = await scripted.get("/nowhere")
    assert r.status_code == 404
    assert "/auth/refresh" not in fake.calls
    assert scripted.is_authenticated


@pytest.mark.asyncio
async def test_concurrent_401s_share_one_refresh(scripted, fake):
    fake.expire_access_token()

    responses = await asyncio.gather(*(scripted.get("/posts") for _ in range(3)))

    assert [r.status_code for r in responses] == [200, 200, 200]
    assert fake.calls["/auth/refresh"] == 1


@pytest.mark.asyncio
async def test_initialize_swallows_refresh_failure():
    backend = FakeBackend(refresh_ok=False)
    async with SessionClient(
        "http://api.test/api/v1", transport=httpx.MockTransport(backend)
    ) as sc:
        assert await sc.initialize() is False
        assert not sc.is_authenticated
    assert backend.calls == {"/auth/refresh": 1}


@pytest.mark.asyncio
async def test_logout_clears_state_even_on_server_error(scripted, fake):
    fake.logout_status = 500

    with pytest.raises(SessionError):
        await scripted.logout()

    assert not scripted.is_authenticated
    assert scripted.access_token is None


@pytest.mark.asyncio
async def test_caller_headers_are_kept_alongside_bearer(scripted, fake):
    fake.expire_access_token()

    r = await scripted.get("/posts", headers={"X-Trace": "1"})

    assert r.status_code == 200
    # The retried request still carries the caller's header
    assert fake.last_posts_headers["X-Trace"] == "1"
    assert fake.last_posts_headers["Authorization"] == f"Bearer {fake.valid_token}"


# ─── Cancellation ───────────────────────────────────────


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_shared_refresh(scripted, fake):
    fake.expire_access_token()

    first = asyncio.ensure_future(scripted.get("/posts"))
    second = asyncio.ensure_future(scripted.get("/posts"))
    await asyncio.sleep(0.01)  # both are now waiting on the refresh
    first.cancel()

    r = await second
    assert r.status_code == 200
    with pytest.raises(asyncio.CancelledError):
        await first
    assert fake.calls["/auth/refresh"] == 1


@pytest.mark.asyncio
async def test_refresh_outlives_cancelled_request(scripted, fake):
    fake.expire_access_token()

    only = asyncio.ensure_future(scripted.get("/posts"))
    await asyncio.sleep(0.01)
    only.cancel()
    with pytest.raises(asyncio.CancelledError):
        await only

    await asyncio.sleep(0.2)
    assert fake.calls["/auth/refresh"] == 1
    assert scripted.access_token == fake.valid_token == "t1"
    assert scripted.is_authenticated


# ─── Malformed responses ────────────────────────────────


@pytest.mark.asyncio
async def test_initialize_swallows_non_json_refresh():
    backend = FakeBackend()
    backend.refresh_text = "<html>proxy</html>"
    async with SessionClient(
        "http://api.test/api/v1", transport=httpx.MockTransport(backend)
    ) as sc:
        assert await sc.initialize() is False
        assert not sc.is_authenticated


@pytest.mark.asyncio
async def test_initialize_swallows_me_without_user():
    backend = FakeBackend()
    backend.me_body = {}
    async with SessionClient(
        "http://api.test/api/v1", transport=httpx.MockTransport(backend)
    ) as sc:
        assert await sc.initialize() is False
        assert not sc.is_authenticated
        assert sc.access_token is None


@pytest.mark.asyncio
async def test_malformed_refresh_expires_session(scripted, fake):
    fake.expire_access_token()
    fake.refresh_text = "<html>proxy</html>"

    with pytest.raises(SessionExpired) as exc_info:
        await scripted.get("/posts")
    assert "accessToken" in exc_info.value.detail
    assert not scripted.is_authenticated
