"""Workflow sync service for reconciling engine execution statistics."""

import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.dal.sync_logs import SyncLogRepository
from src.dal.workflows import WorkflowRepository
from src.engine import EngineClient
from src.settings import get_settings
from src.storage.entities import SyncLog, SyncLogStatus, SyncType, Workflow

logger = logging.getLogger(__name__)

FAILED_STATUSES = frozenset({"error", "crashed", "failed"})
TERMINAL_STATUSES = FAILED_STATUSES | {"success", "canceled", "cancelled"}


class SyncStatus(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass
class SyncOutcome:
    """Result of reconciling one workflow."""

    workflow_id: str
    status: SyncStatus
    executions_updated: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "workflow_id": self.workflow_id,
            "status": self.status.value,
            "executions_updated": self.executions_updated,
            "error": self.error,
        }


@dataclass
class SyncSummary:
    """Aggregate of one reconciliation run, as written to sync_logs."""

    sync_type: SyncType
    outcomes: list[SyncOutcome] = field(default_factory=list)
    duration_ms: int = 0
    sync_log_id: str | None = None

    @property
    def workflows_processed(self) -> int:
        return len(self.outcomes)

    @property
    def successful(self) -> int:
        return sum(1 for o in self.outcomes if o.status == SyncStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status == SyncStatus.ERROR)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == SyncStatus.SKIPPED)

    @property
    def executions_updated(self) -> int:
        return sum(o.executions_updated for o in self.outcomes)

    @property
    def errors(self) -> list[dict[str, str]]:
        return [
            {"workflow_id": o.workflow_id, "error": o.error or "unknown error"}
            for o in self.outcomes
            if o.status == SyncStatus.ERROR
        ]

    @property
    def status(self) -> SyncLogStatus:
        if not self.failed:
            return SyncLogStatus.SUCCESS
        if self.successful or self.skipped:
            return SyncLogStatus.PARTIAL_SUCCESS
        return SyncLogStatus.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "sync_type": self.sync_type.value,
            "status": self.status.value,
            "workflows_processed": self.workflows_processed,
            "successful_syncs": self.successful,
            "failed_syncs": self.failed,
            "skipped_syncs": self.skipped,
            "executions_updated": self.executions_updated,
            "duration_ms": self.duration_ms,
            "errors": self.errors,
            "sync_log_id": self.sync_log_id,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


def _execution_key(execution: dict[str, Any]) -> tuple[int, int | str]:
    """Order engine execution ids numerically when they are numeric."""
    raw = str(execution.get("id", ""))
    return (0, int(raw)) if raw.isdigit() else (1, raw)


def _is_finished(execution: dict[str, Any]) -> bool:
    status = execution.get("status")
    if status:
        return status in TERMINAL_STATUSES
    return bool(execution.get("finished")) or execution.get("stoppedAt") is not None


def _classify(execution: dict[str, Any]) -> str:
    """Map an execution to the status stored on the workflow."""
    status = execution.get("status")
    if status in FAILED_STATUSES:
        return "error"
    if status == "success" or (not status and execution.get("finished")):
        return "success"
    return str(status or "unknown")


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class WorkflowSyncService:
    """Service for reconciling engine executions into workflow runtime stats.

    Only the runtime stats columns of a workflow are written here. Counting
    uses the newest counted engine execution id as a high-water mark:

    1. Fetch the engine-side ``active`` flag
    2. Fetch the latest executions (bounded page)
    3. Count finished executions newer than the mark, oldest first,
       stopping at the first one still running
    4. Advance the mark; counters only ever increase

    A run with no new finished executions changes nothing except
    ``last_sync_at``.
    """

    def __init__(
        self,
        session: AsyncSession,
        engine_client: EngineClient,
        page_size: int | None = None,
    ):
        """Initialize sync service.

        Args:
            session: Database session
            engine_client: Client for the execution engine
            page_size: Executions fetched per workflow (defaults to settings)
        """
        self.session = session
        self.engine = engine_client
        self.page_size = page_size or get_settings().sync_execution_page_size
        self.workflow_repo = WorkflowRepository(session)
        self.sync_log_repo = SyncLogRepository(session)

    async def reconcile(self, workflow_id: str) -> SyncOutcome:
        """Reconcile one workflow and append a ``workflow_sync`` log row.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist
        """
        workflow = await self.workflow_repo.get_or_raise(workflow_id)
        user_id = workflow.user_id
        summary = SyncSummary(sync_type=SyncType.WORKFLOW_SYNC)
        start = time.perf_counter()

        outcome = await self._reconcile_isolated(workflow)
        summary.outcomes.append(outcome)

        summary.duration_ms = int((time.perf_counter() - start) * 1000)
        await self._record(summary, user_id=user_id)
        await self.session.commit()
        return outcome

    async def reconcile_all(self, user_id: str | None = None) -> SyncSummary:
        """Reconcile every active deployed workflow, isolating failures.

        One workflow failing never aborts the batch; its error is recorded
        in the summary and the sync log.

        Args:
            user_id: Restrict the run to one user's workflows

        Returns:
            SyncSummary for the run
        """
        summary = SyncSummary(sync_type=SyncType.BATCH_SYNC)
        start = time.perf_counter()

        workflows = await self.workflow_repo.list_syncable(user_id=user_id)
        logger.info("Reconciling %d workflow(s)", len(workflows))

        for workflow in workflows:
            summary.outcomes.append(await self._reconcile_isolated(workflow))

        summary.duration_ms = int((time.perf_counter() - start) * 1000)
        await self._record(summary, user_id=user_id)
        await self.session.commit()

        logger.info(
            "Sync completed: %d successful, %d failed, %d skipped (%dms)",
            summary.successful,
            summary.failed,
            summary.skipped,
            summary.duration_ms,
        )
        return summary

    async def _reconcile_isolated(self, workflow: Workflow) -> SyncOutcome:
        """Reconcile inside a SAVEPOINT; a failure rolls back only this workflow."""
        workflow_id = workflow.id
        try:
            async with self.session.begin_nested():
                return await self._reconcile_workflow(workflow)
        except Exception as e:
            logger.warning("Sync failed for workflow %s: %s", workflow_id, e, exc_info=True)
            return SyncOutcome(workflow_id, SyncStatus.ERROR, error=str(e))

    async def _reconcile_workflow(self, workflow: Workflow) -> SyncOutcome:
        engine_id = workflow.engine_workflow_id
        if not engine_id:
            return SyncOutcome(workflow.id, SyncStatus.SKIPPED, error="No engine workflow id")

        now = datetime.now(UTC)
        workflow.last_sync_at = now

        remote = await self.engine.get_workflow(engine_id)
        if not remote.get("success"):
            logger.warning("Sync failed for workflow %s: %s", workflow.id, remote.get("error"))
            await self.session.flush()
            return SyncOutcome(workflow.id, SyncStatus.ERROR, error=remote.get("error"))
        if workflow.engine_active != remote["active"]:
            workflow.engine_active = remote["active"]

        response = await self.engine.get_executions(engine_id, limit=self.page_size)
        if not response.get("success"):
            logger.warning("Sync failed for workflow %s: %s", workflow.id, response.get("error"))
            await self.session.flush()
            return SyncOutcome(workflow.id, SyncStatus.ERROR, error=response.get("error"))

        counted = self._apply_executions(workflow, response.get("executions") or [])
        await self.session.flush()

        if counted:
            logger.debug("Workflow %s: counted %d new execution(s)", workflow.id, counted)
        return SyncOutcome(workflow.id, SyncStatus.SUCCESS, executions_updated=counted)

    @staticmethod
    def _apply_executions(workflow: Workflow, executions: list[dict[str, Any]]) -> int:
        """Fold new finished executions into the stats. Returns how many were counted."""
        mark = workflow.last_execution_engine_id
        mark_key = _execution_key({"id": mark}) if mark else None

        fresh = sorted(
            (e for e in executions if isinstance(e, dict) and e.get("id") is not None),
            key=_execution_key,
        )
        if mark_key is not None:
            fresh = [e for e in fresh if _execution_key(e) > mark_key]

        counted = 0
        for execution in fresh:
            if not _is_finished(execution):
                break
            outcome = _classify(execution)
            workflow.execution_count = (workflow.execution_count or 0) + 1
            if outcome == "success":
                workflow.successful_executions = (workflow.successful_executions or 0) + 1
            elif outcome == "error":
                workflow.failed_executions = (workflow.failed_executions or 0) + 1
            workflow.last_execution_status = outcome
            workflow.last_execution_at = _parse_timestamp(execution.get("startedAt"))
            workflow.last_execution_engine_id = str(execution["id"])
            counted += 1

        return counted

    async def _record(self, summary: SyncSummary, user_id: str | None) -> SyncLog:
        log = SyncLog(
            sync_type=summary.sync_type,
            user_id=user_id,
            status=summary.status,
            workflows_processed=summary.workflows_processed,
            successful_syncs=summary.successful,
            failed_syncs=summary.failed,
            skipped_syncs=summary.skipped,
            executions_updated=summary.executions_updated,
            duration_ms=summary.duration_ms,
            errors=summary.errors,
        )
        await self.sync_log_repo.add(log)
        summary.sync_log_id = log.id
        return log
