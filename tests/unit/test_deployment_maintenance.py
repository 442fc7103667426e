"""Unit tests for the stale-deployment janitor and retry sweep."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from src.deployment import DeploymentOutcome, fail_stale_deployments, retry_failed_deployments
from src.deployment.maintenance import STALE_DEPLOYMENT_ERROR
from src.storage.entities import DeploymentStatus, WorkflowDeploymentStatus
from tests.factories import make_deployment, make_workflow

MODULE = "src.deployment.maintenance"


@pytest.fixture
def deployment_repo():
    with patch(f"{MODULE}.DeploymentRepository") as cls:
        repo = cls.return_value
        repo.list_stale = AsyncMock(return_value=[])
        repo.latest_for_workflow = AsyncMock(return_value=None)
        yield repo


@pytest.fixture
def workflow_repo():
    with patch(f"{MODULE}.WorkflowRepository") as cls:
        repo = cls.return_value
        repo.get_by_id = AsyncMock(return_value=None)
        repo.list_retryable = AsyncMock(return_value=[])
        yield repo


@pytest.fixture
def orchestrator():
    with patch(f"{MODULE}.DeploymentOrchestrator") as cls:
        orch = cls.return_value
        orch.deploy = AsyncMock(
            side_effect=lambda workflow_id, activate: DeploymentOutcome(
                success=True, workflow_id=workflow_id
            )
        )
        yield orch


class TestFailStaleDeployments:
    async def test_fails_stuck_rows(self, mock_session, deployment_repo, workflow_repo):
        stuck = make_deployment(status=DeploymentStatus.DEPLOYING)
        workflow = make_workflow(deployment_status=WorkflowDeploymentStatus.DEPLOYING)
        deployment_repo.list_stale.return_value = [stuck]
        workflow_repo.get_by_id.return_value = workflow

        count = await fail_stale_deployments(mock_session, older_than=timedelta(minutes=5))

        assert count == 1
        assert stuck.status == DeploymentStatus.FAILED
        assert stuck.error_message == STALE_DEPLOYMENT_ERROR
        assert stuck.completed_at is not None
        assert workflow.deployment_status == WorkflowDeploymentStatus.FAILED
        assert workflow.deployment_error == STALE_DEPLOYMENT_ERROR
        mock_session.commit.assert_awaited_once()

    async def test_newer_deployment_state_is_kept(self, mock_session, deployment_repo, workflow_repo):
        deployment_repo.list_stale.return_value = [make_deployment(status=DeploymentStatus.DEPLOYING)]
        workflow = make_workflow(deployment_status=WorkflowDeploymentStatus.DEPLOYED)
        workflow_repo.get_by_id.return_value = workflow

        await fail_stale_deployments(mock_session, older_than=timedelta(minutes=5))

        assert workflow.deployment_status == WorkflowDeploymentStatus.DEPLOYED

    async def test_nothing_stale(self, mock_session, deployment_repo, workflow_repo):
        assert await fail_stale_deployments(mock_session, older_than=timedelta(minutes=5)) == 0
        mock_session.commit.assert_not_awaited()


class TestRetryFailedDeployments:
    async def test_redeploys_transport_failure_as_new_version(
        self, mock_session, mock_engine, test_settings, deployment_repo, workflow_repo, orchestrator
    ):
        workflow = make_workflow(deployment_status=WorkflowDeploymentStatus.FAILED, is_active=False)
        workflow_repo.list_retryable.return_value = [workflow]
        deployment_repo.latest_for_workflow.return_value = make_deployment(
            status=DeploymentStatus.FAILED,
            error_message="Engine connection failed: /workflows",
        )

        outcomes = await retry_failed_deployments(mock_session, mock_engine, test_settings)

        assert [o.success for o in outcomes] == [True]
        assert workflow.version == 2
        assert workflow.deployment_retry_count == 1
        orchestrator.deploy.assert_awaited_once_with("wf-1", activate=False)
        workflow_repo.list_retryable.assert_awaited_once_with(test_settings.deployment_max_retries)

    async def test_skips_validation_failures(
        self, mock_session, mock_engine, test_settings, deployment_repo, workflow_repo, orchestrator
    ):
        workflow_repo.list_retryable.return_value = [make_workflow()]
        deployment_repo.latest_for_workflow.return_value = make_deployment(
            status=DeploymentStatus.FAILED,
            error_message="Workflow validation failed",
        )

        assert await retry_failed_deployments(mock_session, mock_engine, test_settings) == []
        orchestrator.deploy.assert_not_awaited()

    async def test_skips_when_latest_is_not_failed(
        self, mock_session, mock_engine, test_settings, deployment_repo, workflow_repo, orchestrator
    ):
        workflow_repo.list_retryable.return_value = [make_workflow()]
        deployment_repo.latest_for_workflow.return_value = make_deployment(
            status=DeploymentStatus.DEPLOYING
        )

        assert await retry_failed_deployments(mock_session, mock_engine, test_settings) == []
        orchestrator.deploy.assert_not_awaited()

    async def test_keeps_already_bumped_version(
        self, mock_session, mock_engine, test_settings, deployment_repo, workflow_repo, orchestrator
    ):
        workflow = make_workflow(version=5)
        workflow_repo.list_retryable.return_value = [workflow]
        deployment_repo.latest_for_workflow.return_value = make_deployment(
            version=3,
            status=DeploymentStatus.FAILED,
            error_message="Engine request timed out: /workflows",
        )

        await retry_failed_deployments(mock_session, mock_engine, test_settings)

        assert workflow.version == 5

    async def test_empty_sweep(self, mock_session, mock_engine, test_settings, workflow_repo):
        assert await retry_failed_deployments(mock_session, mock_engine, test_settings) == []

    async def test_orchestrator_shares_session_and_settings(
        self, mock_session, mock_engine, test_settings, deployment_repo, workflow_repo
    ):
        with patch(f"{MODULE}.DeploymentOrchestrator") as cls:
            await retry_failed_deployments(mock_session, mock_engine, test_settings)

        cls.assert_called_once_with(mock_session, mock_engine, test_settings)
