"""Database entity models.

All SQLAlchemy ORM models owned by the deployment service.
"""

from src.storage.entities.deployment import (
    IN_FLIGHT_STATUSES,
    VALID_TRANSITIONS,
    Deployment,
    DeploymentStatus,
)
from src.storage.entities.sync_log import SyncLog, SyncLogStatus, SyncType
from src.storage.entities.user_profile import UserProfile
from src.storage.entities.workflow import (
    Workflow,
    WorkflowDeploymentStatus,
    WorkflowRuntimeStatsMixin,
    WorkflowStatus,
)

__all__ = [
    "IN_FLIGHT_STATUSES",
    "VALID_TRANSITIONS",
    "Deployment",
    "DeploymentStatus",
    "SyncLog",
    "SyncLogStatus",
    "SyncType",
    "UserProfile",
    "Workflow",
    "WorkflowDeploymentStatus",
    "WorkflowRuntimeStatsMixin",
    "WorkflowStatus",
]
