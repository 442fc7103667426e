"""Workflow validation and deployment endpoints.

Validation is stateless; deployment runs through the
DeploymentOrchestrator inside the request's database session.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db, get_engine
from src.api.rate_limit import limiter
from src.api.schemas import DeploymentListResponse, DeploymentResponse
from src.dal import DeploymentRepository, WorkflowRepository
from src.deployment import DeploymentOrchestrator
from src.engine import EngineClient
from src.schema import validate_workflow, validation_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["Workflows"])


@router.post("/validate")
@limiter.limit("30/minute")
async def validate_document(
    request: Request,
    document: dict[str, Any] = Body(..., description="Workflow document"),
) -> dict[str, Any]:
    """Validate a workflow document without deploying it.

    Always answers 200; ``success`` mirrors ``validation.valid``.
    """
    result = validate_workflow(document)
    return validation_response(result)


@router.post("/{workflow_id}/deploy")
@limiter.limit("5/minute")
async def deploy_workflow(
    request: Request,
    workflow_id: str,
    activate: bool = Query(default=False, description="Activate on the engine after creation"),
    actor: str | None = Query(default=None, description="Requesting user (defaults to owner)"),
    session: AsyncSession = Depends(get_db),
    engine: EngineClient = Depends(get_engine),
) -> dict[str, Any]:
    """Validate and deploy the workflow's current version.

    Validation and engine failures come back as ``success: false``
    envelopes. A version that already reached a terminal state
    answers 409.
    """
    orchestrator = DeploymentOrchestrator(session, engine)
    outcome = await orchestrator.deploy(workflow_id, activate=activate, actor=actor)
    return outcome.to_response()


@router.post("/{workflow_id}/versions")
@limiter.limit("5/minute")
async def bump_workflow_version(
    request: Request,
    workflow_id: str,
    session: AsyncSession = Depends(get_db),
    engine: EngineClient = Depends(get_engine),
) -> dict[str, Any]:
    """Increment the workflow version so it can be deployed again."""
    orchestrator = DeploymentOrchestrator(session, engine)
    version = await orchestrator.bump_version(workflow_id)
    return {"workflow_id": workflow_id, "version": version}


@router.get("/{workflow_id}/deployments", response_model=DeploymentListResponse)
async def list_workflow_deployments(
    workflow_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    session: AsyncSession = Depends(get_db),
) -> DeploymentListResponse:
    """List deployments of a workflow, newest version first."""
    await WorkflowRepository(session).get_or_raise(workflow_id)
    deployments = await DeploymentRepository(session).list_for_workflow(workflow_id, limit=limit)
    return DeploymentListResponse(
        deployments=[DeploymentResponse.model_validate(d) for d in deployments],
        total=len(deployments),
    )
