"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The TokenCodec is built here, synchronously, from settings:
a missing or shared signing secret raises ConfigurationError while the
module is imported, so uvicorn refuses to start instead of failing the
first login. Lifespan only manages optional resources (Redis, the DB pool).
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inkwell import __version__
from inkwell.api import api_router
from inkwell.auth.cookies import SessionCookieManager
from inkwell.auth.tokens import TokenCodec
from inkwell.config import Settings, settings
from inkwell.errors import register_exception_handlers

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "inkwell.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from inkwell.redis_client import close_redis, init_redis
    try:
        await init_redis()
        logger.info("inkwell.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis is optional: only rate limiting depends on it
        logger.warning("inkwell.redis_unavailable", error=str(e))

    yield

    logger.info("inkwell.shutdown")
    await close_redis()

    from inkwell.db.engine import engine
    await engine.dispose()


def build_token_codec(config: Settings) -> TokenCodec:
    return TokenCodec(
        config.access_token_secret,
        config.refresh_token_secret,
        algorithm=config.jwt_algorithm,
        access_ttl=timedelta(minutes=config.access_token_expire_minutes),
        refresh_ttl=timedelta(days=config.refresh_token_expire_days),
    )


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    config = config or settings
    codec = build_token_codec(config)

    app = FastAPI(
        title="Inkwell",
        description="Blog platform backend — authentication and sessions",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.token_codec = codec
    app.state.cookie_manager = SessionCookieManager(
        max_age=codec.refresh_max_age,
        secure=config.is_production,
    )

    register_exception_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from inkwell.middleware.rate_limit import RateLimitMiddleware
    from inkwell.middleware.request_id import RequestIdMiddleware
    from inkwell.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=config.rate_limit_rpm,
        auth_rpm=config.rate_limit_auth_rpm,
    )
    # The refresh cookie only reaches us cross-origin with credentials on
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: inkwell.main:app)
app = create_app()
