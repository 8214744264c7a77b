#!/usr/bin/env python3
"""
Inkwell Quickstart — a full session lifecycle in one script.

Register → /me → authenticated call → refresh → logout → refresh rejected.
Run with: python examples/quickstart.py

Requires: pip install -e .
Backend must be running: http://localhost:8000
"""

import asyncio
import sys
import uuid

import httpx

from inkwell.client import SessionClient, SessionError, SessionExpired

BASE = "http://localhost:8000/api/v1"


async def main():
    run_id = uuid.uuid4().hex[:6]

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        print("Start it with:  inkwell serve --reload")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {health['database']}")
    print(f"  Redis:    {health['redis']}")

    async with SessionClient(BASE) as client:
        # ── Bootstrap: no cookie yet, so nobody is logged in ──────
        print("\n1. Restoring session...")
        restored = await client.initialize()
        print(f"   Restored: {restored}")

        # ── Register (logs in immediately) ────────────────────────
        print("\n2. Registering...")
        user = await client.register(
            username=f"demo_{run_id}",
            email=f"demo-{run_id}@example.com",
            password="demo-password-123",
        )
        print(f"   User: {user['username']} ({user['id'][:8]}...)")

        # ── Authenticated request ─────────────────────────────────
        print("\n3. Calling /auth/me with the access token...")
        resp = await client.get("/auth/me")
        print(f"   Joined: {resp.json()['user']['createdAt']}")

        # ── Rotate the refresh cookie ─────────────────────────────
        print("\n4. Refreshing...")
        old = client.access_token
        new = await client.refresh()
        print(f"   New access token issued: {new != old}")

        # ── Logout, then try to refresh ───────────────────────────
        print("\n5. Logging out...")
        await client.logout()
        print(f"   Authenticated: {client.is_authenticated}")
        try:
            await client.refresh()
        except SessionExpired as e:
            print(f"   Refresh after logout rejected: {e.detail}")

    # ── Wrong password ────────────────────────────────────────────
    async with SessionClient(BASE) as client:
        try:
            await client.login(f"demo-{run_id}@example.com", "not-the-password")
        except SessionError as e:
            print(f"\n6. Bad login: {e.status_code} {e.detail}")

    print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
