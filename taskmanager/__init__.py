"""Cooperative, tick-driven task scheduler."""

from taskmanager.scheduler import SchedulerState, Task, TaskManager, TaskType

__all__ = [
    "Task",
    "TaskType",
    "TaskManager",
    "SchedulerState",
]
