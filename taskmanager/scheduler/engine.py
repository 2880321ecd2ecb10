"""TaskManager — the background tick loop that drives registered tasks."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from taskmanager.config import settings
from taskmanager.scheduler.models import Clock, Condition, Task, TaskCallback, monotonic_ms

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOP_REQUESTED = "stop_requested"


class TaskManager:
    """Runs every registered task once per tick on a single daemon thread.

    Registration methods return the manager for chaining and may be called
    before or after ``start()``, from any thread or from inside a task.

    Args:
        tick_length: Milliseconds between the start of consecutive batches
            (default from settings).
        clock: Millisecond clock handed to delay tasks.
    """

    def __init__(self, tick_length: float | None = None, *, clock: Clock | None = None) -> None:
        self._tick_length = settings.tick_length_ms if tick_length is None else tick_length
        self._clock = clock or monotonic_ms
        self._tasks: list[Task] = []
        self._tasks_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._on_destroyed: Callable[[], None] | None = None
        self._tick_count = 0
        self._last_tick: datetime | None = None

    # -- Properties ------------------------------------------------------------

    @property
    def tick_length(self) -> float:
        return self._tick_length

    @property
    def state(self) -> SchedulerState:
        if self._thread is None:
            return SchedulerState.IDLE
        if self._stop_event.is_set():
            return SchedulerState.STOP_REQUESTED
        return SchedulerState.RUNNING

    @property
    def running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    @property
    def tasks(self) -> tuple[Task, ...]:
        """Snapshot of the active tasks in registration order."""
        with self._tasks_lock:
            return tuple(self._tasks)

    @property
    def tick_count(self) -> int:
        """Batches completed since the last ``start()``."""
        return self._tick_count

    @property
    def last_tick(self) -> datetime | None:
        return self._last_tick

    def health(self) -> dict[str, Any]:
        """Return loop status for diagnostics."""
        thread = self._thread
        return {
            "healthy": thread is not None and thread.is_alive(),
            "state": self.state.value,
            "tick_count": self._tick_count,
            "last_tick": self._last_tick.isoformat() if self._last_tick else None,
            "tick_length_ms": self._tick_length,
            "active_tasks": len(self.tasks),
        }

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> None:
        """Spawn the loop thread. Does nothing if one already exists."""
        with self._lifecycle_lock:
            if self._thread is not None:
                return

            # Clear a stop signal left over from a previous run
            self._stop_event.clear()
            self._tick_count = 0
            self._thread = threading.Thread(
                target=self._run_loop, name=settings.thread_name, daemon=True
            )
            self._thread.start()
        logger.info("TaskManager started (tick=%sms)", self._tick_length)

    def destroy(self, on_destroyed: Callable[[], None] | None = None) -> None:
        """Stop the loop after its current batch and reset to the idle state.

        All tasks are dropped. ``on_destroyed`` is then called on the loop
        thread, so it is safe to ``start()`` this manager again from inside it.
        """
        with self._lifecycle_lock:
            if self._thread is None:
                logger.debug("destroy() called on an idle TaskManager; ignoring")
                return
            self._on_destroyed = on_destroyed
            self._stop_event.set()
        logger.info("TaskManager stop requested")

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.batch_process_tasks()
            except Exception:
                logger.exception("Task batch failed")
                self._stop_event.wait(max(self._tick_length, settings.min_sleep_ms) / 1000)

        with self._lifecycle_lock:
            with self._tasks_lock:
                dropped = len(self._tasks)
                self._tasks.clear()
            callback = self._on_destroyed
            self._on_destroyed = None
            self._thread = None
        logger.info("TaskManager stopped (%d task(s) dropped)", dropped)

        if callback is not None:
            try:
                callback()
            except Exception:
                logger.exception("on_destroyed callback failed")

    # -- Batch -----------------------------------------------------------------

    def batch_process_tasks(self) -> None:
        """Run one tick: every task once, retire stopped tasks, then sleep."""
        clocked_in = time.monotonic()

        with self._tasks_lock:
            batch = list(self._tasks)

        for task in batch:
            task.run()

        with self._tasks_lock:
            retired = [t for t in self._tasks if t.stopped]
            if retired:
                self._tasks = [t for t in self._tasks if not t.stopped]
        for task in retired:
            logger.debug("Retired %r", task)

        self._tick_count += 1
        self._last_tick = datetime.now(UTC)

        elapsed_ms = (time.monotonic() - clocked_in) * 1000
        sleep_for = self._tick_length - elapsed_ms
        if sleep_for <= 0:
            sleep_for = settings.min_sleep_ms

        self._stop_event.wait(sleep_for / 1000)

    # -- Registration ----------------------------------------------------------

    def _add(self, task: Task) -> TaskManager:
        with self._tasks_lock:
            self._tasks.append(task)
        logger.debug("Registered %r", task)
        return self

    def delay(self, millis: float, callback: TaskCallback) -> TaskManager:
        """Run ``callback`` once, ``millis`` milliseconds from now."""
        return self._add(Task.delay(callback, millis, clock=self._clock))

    def delay_loop(self, millis: float, callback: TaskCallback) -> TaskManager:
        """Run ``callback`` every ``millis`` milliseconds until the task is stopped."""
        return self._add(Task.delay_until_stop(callback, millis, clock=self._clock))

    def do_once(self, callback: TaskCallback) -> TaskManager:
        """Run ``callback`` once on the next tick."""
        return self.delay(0, callback)

    def do_while(self, condition: Condition, callback: TaskCallback) -> TaskManager:
        """Run ``callback`` every tick until ``condition()`` returns False."""
        return self._add(Task.conditional_while(callback, condition, clock=self._clock))

    def do_forever(self, callback: TaskCallback) -> TaskManager:
        """Run ``callback`` every tick until it calls ``task.stop()``."""
        return self._add(Task.until_stop(callback, clock=self._clock))

    def loop(self, amount: int, callback: TaskCallback) -> TaskManager:
        """Run ``callback`` on ``amount`` consecutive ticks."""
        return self._add(Task.counted_loop(callback, amount, clock=self._clock))

    def set_tick_length(self, tick_length: float) -> TaskManager:
        """Change the pacing interval; applies from the next batch."""
        self._tick_length = tick_length
        return self
