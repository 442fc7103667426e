"""Sync API schemas."""

from pydantic import BaseModel, Field


class SyncRequest(BaseModel):
    """Body for a manual reconciliation.

    With ``workflow_id`` a single workflow is reconciled; otherwise every
    active deployed workflow, optionally restricted to ``user_id``.
    """

    workflow_id: str | None = Field(default=None, description="Reconcile only this workflow")
    user_id: str | None = Field(default=None, description="Restrict a batch run to one user")
