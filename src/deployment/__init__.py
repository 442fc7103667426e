"""Deployment orchestration and housekeeping."""

from src.deployment.maintenance import fail_stale_deployments, retry_failed_deployments
from src.deployment.orchestrator import DeploymentOrchestrator, DeploymentOutcome

__all__ = [
    "DeploymentOrchestrator",
    "DeploymentOutcome",
    "fail_stale_deployments",
    "retry_failed_deployments",
]
