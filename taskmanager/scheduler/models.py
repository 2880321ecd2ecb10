"""Task and TaskType — the per-task state machine driven by the scheduler loop."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)

TaskCallback = Callable[["Task"], None]
Condition = Callable[[], bool]
Clock = Callable[[], float]


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000


class TaskType(str, Enum):
    """Repetition policy of a task. Fixed at construction."""

    UNTIL_STOP = "until_stop"
    COUNTED_LOOP = "counted_loop"
    CONDITIONAL_WHILE = "conditional_while"
    DELAY = "delay"
    DELAY_UNTIL_STOP = "delay_until_stop"


class Task:
    """A registered callback and the bookkeeping that decides when it fires.

    The callback receives the task itself, so it can call ``stop()`` like a
    ``break`` out of its own loop.

    Args:
        callback: Called with this task each time it fires.
        task_type: The repetition policy.
        condition: Predicate for the conditional and delay kinds.
        counter_max: Invocation limit for ``COUNTED_LOOP``.
        repeating_delay: Interval in milliseconds for ``DELAY_UNTIL_STOP``.
        clock: Millisecond clock used by the delay kinds.
        name: Label used in log lines. Defaults to the callback's name.
    """

    def __init__(
        self,
        callback: TaskCallback,
        task_type: TaskType,
        *,
        condition: Condition | None = None,
        counter_max: int = 0,
        repeating_delay: float = 0,
        clock: Clock = monotonic_ms,
        name: str | None = None,
    ) -> None:
        self._callback = callback
        self._task_type = task_type
        self._condition = condition
        self._counter = 0
        self._counter_max = counter_max
        self._repeating_delay = repeating_delay
        self._clock = clock
        self._stopped = False
        self.name = name or getattr(callback, "__name__", task_type.value)

    # -- Construction variants -------------------------------------------------

    @classmethod
    def until_stop(cls, callback: TaskCallback, **kwargs) -> Task:
        """Fire every tick until ``stop()`` is called."""
        return cls(callback, TaskType.UNTIL_STOP, **kwargs)

    @classmethod
    def counted_loop(cls, callback: TaskCallback, amount: int, **kwargs) -> Task:
        """Fire ``amount`` times, one per tick."""
        return cls(callback, TaskType.COUNTED_LOOP, counter_max=amount, **kwargs)

    @classmethod
    def conditional_while(cls, callback: TaskCallback, condition: Condition, **kwargs) -> Task:
        """Fire every tick while ``condition()`` holds; retire the first tick it fails."""
        return cls(callback, TaskType.CONDITIONAL_WHILE, condition=condition, **kwargs)

    @classmethod
    def delay(cls, callback: TaskCallback, millis: float, **kwargs) -> Task:
        """Fire once, ``millis`` after construction."""
        task = cls(callback, TaskType.DELAY, **kwargs)
        task._arm(millis)
        return task

    @classmethod
    def delay_until_stop(cls, callback: TaskCallback, millis: float, **kwargs) -> Task:
        """Fire every ``millis``, measured from the previous firing, until stopped."""
        task = cls(callback, TaskType.DELAY_UNTIL_STOP, repeating_delay=millis, **kwargs)
        task._arm(millis)
        return task

    # -- Properties ------------------------------------------------------------

    @property
    def task_type(self) -> TaskType:
        return self._task_type

    @property
    def stopped(self) -> bool:
        """True once the task has signalled that it should be retired."""
        return self._stopped

    @property
    def counter(self) -> int:
        return self._counter

    @property
    def counter_max(self) -> int:
        return self._counter_max

    @property
    def repeating_delay(self) -> float:
        return self._repeating_delay

    def set_condition(self, condition: Condition) -> None:
        """Rebind the predicate checked by the conditional and delay kinds."""
        self._condition = condition

    # -- State machine ---------------------------------------------------------

    def run(self) -> bool:
        """Advance the task by one tick.

        Returns False when the task is stopped and should be retired.
        """
        if self._stopped:
            return False

        task_type = self._task_type
        if task_type is TaskType.UNTIL_STOP:
            self.safely_run()

        elif task_type is TaskType.COUNTED_LOOP:
            self.safely_run()
            self._counter += 1
            if self._counter >= self._counter_max:
                self.stop()

        elif self._condition_met():
            if task_type is TaskType.DELAY:
                self.stop()

            self.safely_run()

            if task_type is TaskType.DELAY_UNTIL_STOP:
                self._arm(self._repeating_delay)

        elif task_type is TaskType.CONDITIONAL_WHILE:
            self.stop()

        return not self._stopped

    def safely_run(self) -> None:
        """Invoke the callback; any exception is logged and stops the task."""
        try:
            self._callback(self)
        except Exception:
            logger.exception("Task '%s' (%s) raised; stopping it", self.name, self._task_type.value)
            self.stop()

    def stop(self) -> None:
        """Signal the scheduler to retire this task. Idempotent."""
        self._stopped = True

    # -- Internal --------------------------------------------------------------

    def _condition_met(self) -> bool:
        if self._condition is None:
            return False
        try:
            return bool(self._condition())
        except Exception:
            logger.exception("Condition for task '%s' raised; stopping it", self.name)
            self.stop()
            return False

    def _arm(self, millis: float) -> None:
        """Replace the condition with an elapsed-time check starting now."""
        started = self._clock()
        clock = self._clock
        self.set_condition(lambda: clock() - started >= millis)

    def __repr__(self) -> str:
        state = "stopped" if self._stopped else "active"
        return f"Task(name={self.name!r}, type={self._task_type.value}, {state})"
