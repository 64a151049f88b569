"""
Shared state of a run:
- Job: the unit of simulated work
- SharedBuffer: bounded LIFO stack guarded by one lock and two conditions
- ActiveProducerCount: how many producers are still generating jobs
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional


@dataclass(frozen=True)
class Job:
    """Unit of simulated work. Ids are illustrative, duplicates are fine."""
    id: int
    duration: int
    producer_id: int = 0


class SharedBuffer:
    """Bounded stack of jobs. Producers block when full, consumers when empty."""

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        self._capacity = capacity
        self._jobs: List[Job] = []
        self.lock = threading.Lock()
        self.not_full = threading.Condition(self.lock)
        self.not_empty = threading.Condition(self.lock)

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, job: Job,
             on_pushed: Optional[Callable[[float, int], None]] = None) -> float:
        """
        Insert `job` on top, waiting for space. Returns seconds spent waiting.

        `on_pushed(wait_time, size)` runs before the lock is released, so
        nothing it records can be overtaken by the withdrawal of `job`.
        """
        wait_start = time.monotonic()
        with self.not_full:
            while len(self._jobs) >= self._capacity:
                self.not_full.wait()
            wait_time = time.monotonic() - wait_start
            self._jobs.append(job)
            self.not_empty.notify()
            if on_pushed is not None:
                on_pushed(wait_time, len(self._jobs))
        return wait_time

    def withdraw(self, timeout: float) -> Optional[Job]:
        """
        Take the most recently pushed job.
        Waits at most `timeout` seconds for one to show up; returns None
        when the buffer is still empty after that.
        """
        deadline = time.monotonic() + timeout
        with self.not_empty:
            while not self._jobs:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self.not_empty.wait(remaining)
            job = self._jobs.pop()
            self.not_full.notify()
            return job

    def current_size(self) -> int:
        with self.lock:
            return len(self._jobs)

    def __len__(self):
        return self.current_size()


class ActiveProducerCount:
    """
    Number of producers currently working.

    `expected` is how many producers will register during the run. Once
    the first one registers (or when none ever will) `wait_for_first`
    stops blocking for good.
    """

    def __init__(self, expected: int = 0):
        if expected < 0:
            raise ValueError("expected producer count must be non-negative")
        self._expected = expected
        self._value = 0
        self._started = 0
        self._finished = 0
        self._cond = threading.Condition()

    @property
    def value(self) -> int:
        with self._cond:
            return self._value

    def increment(self) -> None:
        with self._cond:
            self._value += 1
            self._started += 1
            self._cond.notify_all()

    def decrement(self) -> None:
        with self._cond:
            if self._value == 0:
                raise RuntimeError("active producer count would go negative")
            self._value -= 1
            self._finished += 1
            self._cond.notify_all()

    def abandon(self, count: int) -> None:
        """Stop expecting `count` producers that will never start."""
        with self._cond:
            self._expected = max(0, self._expected - count)
            self._cond.notify_all()

    def _activity_seen(self) -> bool:
        return self._started > 0 or self._finished >= self._expected

    def wait_for_first(self, timeout: Optional[float] = None) -> bool:
        """Block until some producer has started. False only on timeout."""
        with self._cond:
            return self._cond.wait_for(self._activity_seen, timeout)

    def __bool__(self):
        return self.value > 0
