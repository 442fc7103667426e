"""Execution engine probe endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from src.api.deps import get_engine
from src.api.rate_limit import limiter
from src.engine import EngineClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/engine", tags=["Engine"])


@router.get("/health")
@limiter.limit("30/minute")
async def engine_health(
    request: Request,
    engine: EngineClient = Depends(get_engine),
) -> dict[str, Any]:
    """Probe the execution engine's health endpoint.

    Never raises: an unreachable engine is reported as
    ``{"success": false, "healthy": false, "error": ...}``.
    """
    return await engine.health()


@router.get("/node-types")
@limiter.limit("30/minute")
async def engine_node_types(
    request: Request,
    engine: EngineClient = Depends(get_engine),
) -> dict[str, Any]:
    """List node types installed on the engine."""
    return await engine.get_node_types()
