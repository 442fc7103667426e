"""Scheduler package for periodic sync and deployment maintenance jobs."""

from src.scheduler.service import SchedulerService

__all__ = ["SchedulerService"]
