"""Sync log repository (append-only)."""

from src.dal.base import BaseRepository
from src.storage.entities import SyncLog


class SyncLogRepository(BaseRepository[SyncLog]):
    """Repository for SyncLog records."""

    model = SyncLog
