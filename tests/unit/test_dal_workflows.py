"""Unit tests for WorkflowRepository queries, with mocked database sessions."""

from unittest.mock import MagicMock

import pytest

from src.dal.workflows import WorkflowRepository
from src.exceptions import WorkflowNotFoundError
from src.storage.entities import WorkflowDeploymentStatus
from tests.factories import make_workflow


def _returning(mock_session, rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    result.scalar_one_or_none.return_value = rows[0] if rows else None
    mock_session.execute.return_value = result


def _where(mock_session) -> str:
    statement = mock_session.execute.await_args.args[0]
    return str(statement.whereclause)


class TestListRetryable:
    async def test_includes_inactive_workflows(self, mock_session):
        inactive = make_workflow(is_active=False, deployment_status=WorkflowDeploymentStatus.FAILED)
        _returning(mock_session, [inactive])

        rows = await WorkflowRepository(mock_session).list_retryable(max_retries=3)

        assert rows == [inactive]
        where = _where(mock_session)
        assert "is_active" not in where
        assert "deployment_status" in where
        assert "deployment_retry_count" in where


class TestListSyncable:
    async def test_only_active_deployed(self, mock_session):
        _returning(mock_session, [])

        await WorkflowRepository(mock_session).list_syncable()

        where = _where(mock_session)
        assert "is_active" in where
        assert "deployment_status" in where
        assert "user_id" not in where

    async def test_scoped_to_user(self, mock_session):
        _returning(mock_session, [])

        await WorkflowRepository(mock_session).list_syncable(user_id="user-1")

        assert "user_id" in _where(mock_session)


class TestGetOrRaise:
    async def test_missing(self, mock_session):
        _returning(mock_session, [])

        with pytest.raises(WorkflowNotFoundError):
            await WorkflowRepository(mock_session).get_or_raise("nope")
