"""Deployment endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db, get_engine
from src.api.rate_limit import limiter
from src.api.schemas import DeploymentResponse, RollbackRequest
from src.dal import DeploymentRepository
from src.deployment import DeploymentOrchestrator
from src.engine import EngineClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deployments", tags=["Deployments"])


@router.get("/{deployment_id}", response_model=DeploymentResponse)
async def get_deployment(
    deployment_id: str,
    session: AsyncSession = Depends(get_db),
) -> DeploymentResponse:
    deployment = await DeploymentRepository(session).get_or_raise(deployment_id)
    return DeploymentResponse.model_validate(deployment)


@router.post("/{deployment_id}/rollback")
@limiter.limit("5/minute")
async def rollback_deployment(
    request: Request,
    deployment_id: str,
    body: RollbackRequest | None = None,
    session: AsyncSession = Depends(get_db),
    engine: EngineClient = Depends(get_engine),
) -> dict[str, Any]:
    """Deactivate and remove a deployed version from the engine.

    Only ``deployed`` records can be rolled back (409 otherwise).
    """
    orchestrator = DeploymentOrchestrator(session, engine)
    reason = body.reason if body else None
    outcome = await orchestrator.rollback(deployment_id, reason=reason)
    return outcome.to_response()
