"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter (see inkwell.auth.dependencies.protected).
Health and auth routers are open; /auth/me guards itself because it
also needs the decoded identity.
"""

from fastapi import APIRouter

from inkwell.api.auth import router as auth_router
from inkwell.api.health import router as health_router

api_router = APIRouter(prefix="/api/v1")

# Open routes: no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Content routers go below, guarded as a whole:
#   api_router.include_router(posts_router, dependencies=protected)
