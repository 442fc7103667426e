"""API route registration.

Aggregates all API routers into a single router
for inclusion in the main application.
"""

from fastapi import APIRouter

from src.api.routes.deployments import router as deployments_router
from src.api.routes.engine import router as engine_router
from src.api.routes.sync import router as sync_router
from src.api.routes.system import router as system_router
from src.api.routes.workflows import router as workflows_router

api_router = APIRouter()

api_router.include_router(system_router, tags=["System"])
api_router.include_router(engine_router)
api_router.include_router(workflows_router)
api_router.include_router(deployments_router)
api_router.include_router(sync_router)

__all__ = ["api_router"]
