"""Scheduler module for the link shortener.

This module provides scheduled task functionality using APScheduler.
"""

from shortlink.scheduler.scheduler import SchedulerService

__all__ = ["SchedulerService"]
