"""Tick-driven task scheduling — the task state machine and the loop that drives it."""

from taskmanager.scheduler.engine import SchedulerState, TaskManager
from taskmanager.scheduler.models import Task, TaskType

__all__ = [
    "Task",
    "TaskType",
    "TaskManager",
    "SchedulerState",
]
