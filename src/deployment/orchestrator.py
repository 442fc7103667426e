"""Deployment orchestrator.

Drives one workflow version through the deployment state machine:

    pending -> deploying -> deployed | failed      (deploy)
    deployed -> rolled_back                        (rollback)

Validation happens inside the engine client's ``deploy`` before any
network call. The orchestrator never writes runtime stats; those belong
to the sync service.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.dal.deployments import DeploymentRepository
from src.dal.user_profiles import UserProfileRepository
from src.dal.workflows import WorkflowRepository
from src.engine import EngineClient, editor_url_for
from src.exceptions import DeploymentStateError
from src.settings import Settings, get_settings
from src.storage.entities import (
    Deployment,
    DeploymentStatus,
    Workflow,
    WorkflowDeploymentStatus,
    WorkflowStatus,
)

logger = logging.getLogger(__name__)

VALIDATION_FAILED = "Workflow validation failed"


@dataclass
class DeploymentOutcome:
    """Result of a deploy or rollback request.

    ``retryable`` is True only for transport failures; validation
    failures and in-flight conflicts are never retried.
    """

    success: bool
    workflow_id: str
    deployment_id: str | None = None
    version: int | None = None
    status: str | None = None
    engine_workflow_id: str | None = None
    validation: dict[str, Any] | None = None
    error: str | None = None
    engine_response: dict[str, Any] | None = None
    duration_ms: int | None = None
    retryable: bool = False

    def to_response(self) -> dict[str, Any]:
        """Render the deployment response envelope."""
        if self.success:
            response: dict[str, Any] = {
                "success": True,
                "workflowId": self.engine_workflow_id,
                "n8nResponse": self.engine_response or {},
                "validation": self.validation,
            }
        else:
            response = {"success": False, "error": self.error}
            if self.validation is not None:
                response["validation"] = self.validation
        response["deploymentId"] = self.deployment_id
        response["status"] = self.status
        response["version"] = self.version
        return response


def _document_for(workflow: Workflow) -> dict[str, Any]:
    document = dict(workflow.document or {})
    document.setdefault("name", workflow.name)
    return document


class DeploymentOrchestrator:
    """Sequences validation, engine submission and record keeping.

    One orchestrator works inside one database session. Independent
    workflows may be deployed concurrently from separate sessions; the
    unique (workflow_id, version) constraint keeps two callers from
    deploying the same version at once.
    """

    def __init__(
        self,
        session: AsyncSession,
        engine_client: EngineClient,
        settings: Settings | None = None,
    ):
        self.session = session
        self.engine = engine_client
        self.settings = settings or get_settings()
        self.workflow_repo = WorkflowRepository(session)
        self.deployment_repo = DeploymentRepository(session)
        self.user_repo = UserProfileRepository(session)

    async def deploy(
        self,
        workflow_id: str,
        activate: bool = False,
        actor: str | None = None,
    ) -> DeploymentOutcome:
        """Deploy the workflow's current version.

        Args:
            workflow_id: Workflow to deploy
            activate: Activate the workflow on the engine after creation
            actor: User requesting the deploy (defaults to the owner)

        Returns:
            DeploymentOutcome; engine and validation failures are reported
            here, not raised

        Raises:
            WorkflowNotFoundError: If the workflow does not exist
            DeploymentStateError: If this version already reached a
                terminal state (bump the version to redeploy)
        """
        workflow = await self.workflow_repo.get_or_raise(workflow_id)
        actor = actor or workflow.user_id
        version = workflow.version

        existing = await self.deployment_repo.get_for_version(workflow.id, version)
        if existing is not None:
            return self._existing_outcome(workflow, existing)

        try:
            deployment = await self.deployment_repo.create_pending(workflow.id, actor, version)
        except IntegrityError:
            await self.session.rollback()
            logger.info("Lost race creating deployment for %s v%d", workflow_id, version)
            return self._in_progress(workflow_id, version)

        deployment.start()
        workflow.deployment_status = WorkflowDeploymentStatus.DEPLOYING
        await self.session.commit()
        logger.info("Deploying workflow %s v%d (deployment %s)", workflow.id, version, deployment.id)

        try:
            result = await self.engine.deploy(_document_for(workflow), activate=activate)
        except Exception as e:
            deployment.mark_failed(f"Unexpected deployment error: {e}")
            workflow.deployment_status = WorkflowDeploymentStatus.FAILED
            workflow.deployment_error = deployment.error_message
            await self.session.commit()
            raise

        if result.get("success"):
            return await self._complete(workflow, deployment, result, actor)
        return await self._fail(workflow, deployment, result)

    async def _complete(
        self,
        workflow: Workflow,
        deployment: Deployment,
        result: dict[str, Any],
        actor: str,
    ) -> DeploymentOutcome:
        now = datetime.now(UTC)
        engine_id = result["workflowId"]
        deployment.mark_deployed(engine_id, result.get("n8nResponse"), now=now)
        deployment.deployment_url = editor_url_for(self.engine.config.api_url, engine_id)

        workflow.status = WorkflowStatus.DEPLOYED
        workflow.deployment_status = WorkflowDeploymentStatus.DEPLOYED
        workflow.engine_workflow_id = engine_id
        workflow.deployment_url = deployment.deployment_url
        workflow.deployment_error = None
        workflow.last_deployed_at = now
        workflow.deployment_retry_count = 0

        await self.user_repo.record_successful_deployment(actor, now)
        await self.session.commit()

        logger.info(
            "Deployed workflow %s v%d as engine workflow %s in %sms",
            workflow.id,
            deployment.version,
            engine_id,
            deployment.duration_ms,
        )
        return DeploymentOutcome(
            success=True,
            workflow_id=workflow.id,
            deployment_id=deployment.id,
            version=deployment.version,
            status=DeploymentStatus.DEPLOYED,
            engine_workflow_id=engine_id,
            validation=result.get("validation"),
            engine_response=result.get("n8nResponse"),
            duration_ms=deployment.duration_ms,
        )

    async def _fail(
        self,
        workflow: Workflow,
        deployment: Deployment,
        result: dict[str, Any],
    ) -> DeploymentOutcome:
        error = result.get("error") or "Deployment failed"
        validation = result.get("validation")
        validation_failed = error == VALIDATION_FAILED

        deployment.mark_failed(error)
        workflow.deployment_status = WorkflowDeploymentStatus.FAILED
        workflow.deployment_error = error
        if validation_failed:
            workflow.status = WorkflowStatus.FAILED
        await self.session.commit()

        logger.warning("Deployment %s of workflow %s failed: %s", deployment.id, workflow.id, error)
        return DeploymentOutcome(
            success=False,
            workflow_id=workflow.id,
            deployment_id=deployment.id,
            version=deployment.version,
            status=DeploymentStatus.FAILED,
            validation=validation,
            error=error,
            duration_ms=deployment.duration_ms,
            retryable=not validation_failed,
        )

    def _existing_outcome(self, workflow: Workflow, existing: Deployment) -> DeploymentOutcome:
        if existing.is_in_flight:
            return self._in_progress(workflow.id, existing.version, existing)
        raise DeploymentStateError(
            f"Version {existing.version} of workflow {workflow.id} was already deployed "
            f"with status {existing.status}; bump the version to redeploy",
            status=str(existing.status),
        )

    @staticmethod
    def _in_progress(
        workflow_id: str,
        version: int,
        existing: Deployment | None = None,
    ) -> DeploymentOutcome:
        return DeploymentOutcome(
            success=False,
            workflow_id=workflow_id,
            deployment_id=existing.id if existing else None,
            version=version,
            status=existing.status if existing else None,
            error=f"Deployment already in progress for version {version}",
        )

    async def rollback(self, deployment_id: str, reason: str | None = None) -> DeploymentOutcome:
        """Take a deployed version off the engine.

        The engine workflow is deactivated (required) and then deleted
        (best effort). If deactivation fails the record stays ``deployed``.

        Raises:
            DeploymentNotFoundError: If the deployment does not exist
            DeploymentStateError: If the deployment is not ``deployed``
        """
        reason = reason or "Manual rollback"
        deployment = await self.deployment_repo.get_or_raise(deployment_id)
        if deployment.status != DeploymentStatus.DEPLOYED:
            raise DeploymentStateError(
                f"Cannot roll back deployment {deployment_id} from status {deployment.status}",
                status=str(deployment.status),
            )

        workflow = await self.workflow_repo.get_or_raise(deployment.workflow_id)
        engine_id = deployment.engine_workflow_id

        if engine_id:
            result = await self.engine.deactivate(engine_id)
            if not result.get("success"):
                logger.warning("Rollback of deployment %s failed: %s", deployment_id, result.get("error"))
                return DeploymentOutcome(
                    success=False,
                    workflow_id=workflow.id,
                    deployment_id=deployment.id,
                    version=deployment.version,
                    status=deployment.status,
                    engine_workflow_id=engine_id,
                    error=f"Rollback failed: {result.get('error')}",
                )
            deleted = await self.engine.delete(engine_id)
            if not deleted.get("success"):
                logger.warning(
                    "Engine workflow %s deactivated but not deleted: %s",
                    engine_id,
                    deleted.get("error"),
                )

        deployment.mark_rolled_back(reason)
        if workflow.engine_workflow_id == engine_id:
            workflow.status = WorkflowStatus.DRAFT
            workflow.deployment_status = WorkflowDeploymentStatus.NOT_DEPLOYED
            workflow.engine_workflow_id = None
            workflow.deployment_url = None
        await self.session.commit()

        logger.info("Rolled back deployment %s of workflow %s: %s", deployment.id, workflow.id, reason)
        return DeploymentOutcome(
            success=True,
            workflow_id=workflow.id,
            deployment_id=deployment.id,
            version=deployment.version,
            status=DeploymentStatus.ROLLED_BACK,
            engine_workflow_id=engine_id,
        )

    async def bump_version(self, workflow_id: str) -> int:
        """Increment the workflow's version so it can be deployed again."""
        workflow = await self.workflow_repo.get_or_raise(workflow_id)
        workflow.version += 1
        await self.session.commit()
        return workflow.version

    async def deploy_with_retry(
        self,
        workflow_id: str,
        activate: bool = False,
        actor: str | None = None,
    ) -> DeploymentOutcome:
        """Deploy, retrying transport failures with backoff.

        Each retry deploys a new version. Validation failures and
        in-flight conflicts are returned immediately.
        """
        max_retries = self.settings.deployment_max_retries
        delays = self.settings.deployment_retry_delays

        outcome = await self.deploy(workflow_id, activate=activate, actor=actor)
        attempt = 0
        while not outcome.success and outcome.retryable and attempt < max_retries:
            delay = delays[min(attempt, len(delays) - 1)] if delays else 0
            attempt += 1
            logger.warning(
                "Deployment of %s failed (attempt %d/%d): %s. Retrying in %ss...",
                workflow_id,
                attempt,
                max_retries + 1,
                outcome.error,
                delay,
            )
            await asyncio.sleep(delay)
            await self.bump_version(workflow_id)
            outcome = await self.deploy(workflow_id, activate=activate, actor=actor)

        if not outcome.success and outcome.retryable:
            logger.error("All retries exhausted for workflow %s: %s", workflow_id, outcome.error)
        return outcome
