"""Inkwell CLI — run the server, generate secrets, check a login.

Usage:
    inkwell serve                                  # Run the API with uvicorn
    inkwell gen-secrets                            # Print a fresh secret pair
    inkwell whoami -e alice@example.com -p ...     # Login → /me → refresh → logout
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
import secrets
import sys

import click
import httpx

from inkwell.client.session import SessionClient, SessionError

DEFAULT_API_URL = "http://localhost:8000/api/v1"


def _api_url() -> str:
    return os.environ.get("INKWELL_API_URL", DEFAULT_API_URL).rstrip("/")


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


@click.group()
def cli():
    """Inkwell — blog platform backend."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default from settings).")
@click.option("--port", default=None, type=int, help="Port (default from settings).")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes.")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    from inkwell.config import settings

    uvicorn.run(
        "inkwell.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("gen-secrets")
def gen_secrets():
    """Print a pair of distinct signing secrets as env assignments."""
    click.echo(f"INKWELL_ACCESS_TOKEN_SECRET={secrets.token_urlsafe(32)}")
    click.echo(f"INKWELL_REFRESH_TOKEN_SECRET={secrets.token_urlsafe(32)}")


@cli.command()
@click.option("--email", "-e", required=True)
@click.option("--password", "-p", required=True, prompt=True, hide_input=True)
@click.option("--api-url", default=None, help="API base URL (default: $INKWELL_API_URL).")
def whoami(email: str, password: str, api_url: str | None):
    """Log in, show the current user, rotate the session once, log out."""

    async def _go():
        async with SessionClient(api_url or _api_url()) as client:
            user = await client.login(email, password)
            click.secho(f"Logged in as {user['username']} <{user['email']}>", fg="green")
            click.echo(f"  id:      {user['id']}")
            click.echo(f"  created: {user.get('createdAt', '—')}")
            await client.refresh()
            click.echo("  refresh: ok")
            await client.logout()
            click.echo("  logout:  ok")

    try:
        _run(_go())
    except SessionError as e:
        click.secho(f"Error: {e.detail} ({e.status_code})", fg="red", err=True)
        sys.exit(1)
    except httpx.HTTPError as e:
        click.secho(f"Error: backend not reachable: {e}", fg="red", err=True)
        sys.exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
