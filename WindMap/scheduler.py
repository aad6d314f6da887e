"""Fixed-interval refresh scheduler running every task on one thread."""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional


DEFAULT_INTERVAL_SECONDS = 600.0  # 10 minutes


@dataclass
class RepeatingTask:
    name: str
    func: Callable[[], object]
    interval_seconds: float
    next_run: float = 0.0
    run_count: int = 0


class RefreshScheduler:
    """
    Runs named repeating tasks: once at start, then every interval.

    Tasks run one after another on the calling thread, so a task can never
    overlap with itself. An exception escaping a task is logged and the
    task is rescheduled as usual.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.tasks: List[RepeatingTask] = []
        self._stop_event = threading.Event()

    def add_task(self, name: str, func: Callable[[], object], interval_seconds: float = DEFAULT_INTERVAL_SECONDS) -> RepeatingTask:
        if interval_seconds <= 0:
            raise ValueError(f"Interval for task '{name}' must be positive, got {interval_seconds}")
        task = RepeatingTask(name=name, func=func, interval_seconds=interval_seconds, next_run=self.clock())
        self.tasks.append(task)
        logging.info(f"Scheduled task '{name}' every {interval_seconds}s")
        return task

    def run_pending(self) -> int:
        """
        Run every task that is due.

        Returns:
            Number of tasks run
        """
        ran = 0
        for task in self.tasks:
            if self._stop_event.is_set():
                break
            now = self.clock()
            if now < task.next_run:
                continue
            task.run_count += 1
            logging.debug(f"Running task '{task.name}' (run {task.run_count})")
            try:
                task.func()
            except Exception as exc:
                logging.exception(f"Task '{task.name}' failed: {exc}")
            task.next_run = now + task.interval_seconds
            ran += 1
        return ran

    def seconds_until_next(self) -> Optional[float]:
        if not self.tasks:
            return None
        return max(0.0, min(task.next_run for task in self.tasks) - self.clock())

    def run_forever(self) -> None:
        """Run tasks until stop() is called."""
        logging.info(f"Scheduler started with {len(self.tasks)} task(s)")
        while not self._stop_event.is_set():
            self.run_pending()
            delay = self.seconds_until_next()
            if delay is None:
                break
            self._stop_event.wait(max(delay, 0.1))
        logging.info("Scheduler stopped")

    def stop(self) -> None:
        """Stop the scheduler; safe to call from a signal handler."""
        self._stop_event.set()
