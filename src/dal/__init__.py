"""Data Access Layer.

Repositories over the owned tables, plus the sync service that
reconciles engine execution statistics into them.
"""

from src.dal.deployments import DeploymentRepository
from src.dal.sync import SyncOutcome, SyncStatus, SyncSummary, WorkflowSyncService
from src.dal.sync_logs import SyncLogRepository
from src.dal.user_profiles import UserProfileRepository
from src.dal.workflows import WorkflowRepository

__all__ = [
    "DeploymentRepository",
    "SyncLogRepository",
    "SyncOutcome",
    "SyncStatus",
    "SyncSummary",
    "UserProfileRepository",
    "WorkflowRepository",
    "WorkflowSyncService",
]
