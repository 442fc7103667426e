"""Unit tests for the scheduler service job registration."""

import logging

import pytest

from src.scheduler import SchedulerService
from src.scheduler.service import _execute_janitor, _execute_retry_sweep, _execute_sync


@pytest.fixture
async def scheduler(test_settings):
    service = SchedulerService(test_settings)
    yield service
    await service.stop()


class TestSchedulerService:
    async def test_registers_all_jobs(self, scheduler):
        await scheduler.start()

        assert scheduler.running
        assert SchedulerService.get_instance() is scheduler
        assert sorted(scheduler.job_ids()) == [
            "deployments:janitor",
            "deployments:retry",
            "sync:periodic",
        ]

    async def test_stop_clears_instance(self, scheduler):
        await scheduler.start()
        await scheduler.stop()

        assert not scheduler.running
        assert SchedulerService.get_instance() is None

    async def test_disabled_scheduler_does_nothing(self, test_settings):
        service = SchedulerService(test_settings.model_copy(update={"scheduler_enabled": False}))

        await service.start()

        assert not service.running
        assert service.job_ids() == []

    async def test_sync_and_retry_can_be_turned_off(self, test_settings):
        settings = test_settings.model_copy(
            update={"sync_enabled": False, "deployment_max_retries": 0}
        )
        service = SchedulerService(settings)

        await service.start()
        try:
            assert service.job_ids() == ["deployments:janitor"]
        finally:
            await service.stop()


class TestJobWrappers:
    @pytest.mark.parametrize("job", [_execute_sync, _execute_janitor, _execute_retry_sweep])
    async def test_failures_are_logged_not_raised(self, job, caplog):
        # The unit-test DB guard makes get_session() raise.
        with caplog.at_level(logging.ERROR, logger="src.scheduler.service"):
            await job()

        assert any("failed" in r.getMessage() for r in caplog.records)
