"""Manual reconciliation endpoint."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db, get_engine
from src.api.rate_limit import limiter
from src.api.schemas import SyncRequest
from src.dal import WorkflowSyncService
from src.engine import EngineClient
from src.exceptions import WorkflowNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sync"])


@router.post("/sync")
@limiter.limit("5/minute")
async def trigger_sync(
    request: Request,
    body: SyncRequest | None = None,
    session: AsyncSession = Depends(get_db),
    engine: EngineClient = Depends(get_engine),
) -> dict[str, Any]:
    """Reconcile execution statistics from the engine.

    Per-workflow engine failures are reported in the result rather than
    raised. Rate limited to 5/minute.
    """
    body = body or SyncRequest()
    service = WorkflowSyncService(session, engine)
    try:
        if body.workflow_id:
            outcome = await service.reconcile(body.workflow_id)
            return outcome.to_dict()
        summary = await service.reconcile_all(user_id=body.user_id)
        return summary.to_dict()
    except WorkflowNotFoundError:
        raise
    except Exception as e:
        from src.api.utils import sanitize_error

        raise HTTPException(
            status_code=500,
            detail=sanitize_error(e, context="Workflow sync"),
        ) from e
