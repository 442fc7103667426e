"""Deployment housekeeping run by the scheduler.

- ``fail_stale_deployments``: a deploy abandoned mid-call leaves its row
  in ``deploying``; after a timeout window the janitor fails it.
- ``retry_failed_deployments``: bounded automatic redeploy of workflows
  whose latest attempt failed on transport, each retry as a new version.
"""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from src.dal.deployments import DeploymentRepository
from src.dal.workflows import WorkflowRepository
from src.deployment.orchestrator import VALIDATION_FAILED, DeploymentOrchestrator, DeploymentOutcome
from src.engine import EngineClient
from src.settings import Settings, get_settings
from src.storage.entities import DeploymentStatus, WorkflowDeploymentStatus

logger = logging.getLogger(__name__)

STALE_DEPLOYMENT_ERROR = "Deployment timed out"


async def fail_stale_deployments(
    session: AsyncSession,
    older_than: timedelta | None = None,
) -> int:
    """Fail every ``deploying`` row started before the cutoff.

    Args:
        session: Database session
        older_than: Age threshold (defaults to deployment_stale_after_minutes)

    Returns:
        Number of deployments failed
    """
    if older_than is None:
        older_than = timedelta(minutes=get_settings().deployment_stale_after_minutes)
    cutoff = datetime.now(UTC) - older_than

    deployment_repo = DeploymentRepository(session)
    workflow_repo = WorkflowRepository(session)

    stale = await deployment_repo.list_stale(cutoff)
    for deployment in stale:
        deployment.mark_failed(STALE_DEPLOYMENT_ERROR)
        workflow = await workflow_repo.get_by_id(deployment.workflow_id)
        if workflow is not None and workflow.deployment_status == WorkflowDeploymentStatus.DEPLOYING:
            workflow.deployment_status = WorkflowDeploymentStatus.FAILED
            workflow.deployment_error = STALE_DEPLOYMENT_ERROR

    if stale:
        await session.commit()
        logger.info("Failed %d stale deployment(s) older than %s", len(stale), older_than)
    return len(stale)


async def retry_failed_deployments(
    session: AsyncSession,
    engine_client: EngineClient,
    settings: Settings | None = None,
) -> list[DeploymentOutcome]:
    """Redeploy workflows whose latest deployment failed on transport.

    Validation failures are skipped; they need the document edited. Each
    workflow gets at most ``deployment_max_retries`` automatic attempts,
    counted on the workflow and reset by a successful deploy.

    Returns:
        Outcomes of the attempts made in this sweep
    """
    settings = settings or get_settings()
    workflow_repo = WorkflowRepository(session)
    deployment_repo = DeploymentRepository(session)
    orchestrator = DeploymentOrchestrator(session, engine_client, settings)

    outcomes: list[DeploymentOutcome] = []
    for workflow in await workflow_repo.list_retryable(settings.deployment_max_retries):
        latest = await deployment_repo.latest_for_workflow(workflow.id)
        if latest is None or latest.status != DeploymentStatus.FAILED:
            continue
        if latest.error_message == VALIDATION_FAILED:
            continue

        workflow.deployment_retry_count += 1
        if latest.version >= workflow.version:
            workflow.version = latest.version + 1
        await session.commit()

        logger.info(
            "Retrying deployment of workflow %s as v%d (retry %d/%d)",
            workflow.id,
            workflow.version,
            workflow.deployment_retry_count,
            settings.deployment_max_retries,
        )
        outcomes.append(await orchestrator.deploy(workflow.id, activate=workflow.is_active))

    if outcomes:
        succeeded = sum(1 for o in outcomes if o.success)
        logger.info("Retry sweep: %d/%d redeploy(s) succeeded", succeeded, len(outcomes))
    return outcomes
