"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and dependencies (database, Redis) are reachable. Redis is optional,
so its absence degrades nothing but rate limiting.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell import __version__
from inkwell.db.engine import get_db
from inkwell.redis_client import get_redis

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except RuntimeError:
        checks["redis"] = "disabled"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
