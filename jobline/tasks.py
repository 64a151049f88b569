"""
Producer and consumer bodies. Each task runs in its own thread and only
talks to the others through the SharedBuffer and ActiveProducerCount.
"""
import enum
import random
import time
from typing import Optional

from .buffer import ActiveProducerCount, Job, SharedBuffer
from .config import (
    DEFAULT_MAX_WAIT_MS,
    MAX_JOB_DURATION,
    MAX_PRODUCE_DELAY,
    MIN_JOB_DURATION,
    MIN_PRODUCE_DELAY,
)
from .events import EventLog
from .metrics import RunMetrics


class TaskState(enum.Enum):
    NEW = "NEW"
    WORKING = "WORKING"
    AWAITING_FIRST_PRODUCER = "AWAITING_FIRST_PRODUCER"
    WAITING_FOR_JOB = "WAITING_FOR_JOB"
    PROCESSING = "PROCESSING"
    FINISHED = "FINISHED"


class ProducerTask:
    """Pushes `jobs_to_produce` random jobs, pausing 1-5 units between them."""

    def __init__(self, producer_id: int, jobs_to_produce: int,
                 buffer: SharedBuffer, active: ActiveProducerCount,
                 events: EventLog, metrics: Optional[RunMetrics] = None,
                 rng: Optional[random.Random] = None, time_unit: float = 1.0):
        self.id = producer_id
        self.jobs_to_produce = jobs_to_produce
        self.buffer = buffer
        self.active = active
        self.events = events
        self.metrics = metrics if metrics is not None else RunMetrics()
        self.rng = rng or random.Random()
        self.time_unit = time_unit
        self.state = TaskState.NEW
        self.produced = 0

    def make_job(self) -> Job:
        return Job(
            id=self.rng.randrange(self.buffer.capacity),
            duration=self.rng.randint(MIN_JOB_DURATION, MAX_JOB_DURATION),
            producer_id=self.id,
        )

    def run(self):
        self.active.increment()
        self.state = TaskState.WORKING
        try:
            for _ in range(self.jobs_to_produce):
                job = self.make_job()

                def pushed(wait_time, size, job=job):
                    self.produced += 1
                    self.metrics.record_push(self.id, wait_time, size)
                    self.events.produced(self.id, job.id, job.duration)

                self.buffer.push(job, on_pushed=pushed)

                delay = self.rng.randint(MIN_PRODUCE_DELAY, MAX_PRODUCE_DELAY)
                time.sleep(delay * self.time_unit)

            self.events.producer_finished(self.id)
        finally:
            # Consumers key their shutdown on this count, so it drops even on failure.
            self.state = TaskState.FINISHED
            self.active.decrement()


class ConsumerTask:
    """
    Drains the buffer while any producer is active or jobs remain.

    Withdrawals are bounded by `max_wait_ms` so the consumer regularly
    rechecks whether production is over instead of blocking forever.
    """

    def __init__(self, consumer_id: int, buffer: SharedBuffer,
                 active: ActiveProducerCount, events: EventLog,
                 metrics: Optional[RunMetrics] = None,
                 max_wait_ms: int = DEFAULT_MAX_WAIT_MS, time_unit: float = 1.0):
        self.id = consumer_id
        self.buffer = buffer
        self.active = active
        self.events = events
        self.metrics = metrics if metrics is not None else RunMetrics()
        self.max_wait_ms = max_wait_ms
        self.time_unit = time_unit
        self.state = TaskState.NEW
        self.consumed = 0

    def should_continue(self) -> bool:
        return bool(self.active) or self.buffer.current_size() > 0

    def run(self):
        self.state = TaskState.AWAITING_FIRST_PRODUCER
        self.active.wait_for_first()

        while self.should_continue():
            self.state = TaskState.WAITING_FOR_JOB
            wait_start = time.monotonic()
            job = self.buffer.withdraw(self.max_wait_ms / 1000)
            if job is None:
                self.metrics.record_timeout()
                continue

            self.consumed += 1
            self.metrics.record_withdraw(self.id, time.monotonic() - wait_start,
                                         self.buffer.current_size())
            self.events.consumed(self.id, job.id, job.duration)

            # buffer lock is already released here
            self.state = TaskState.PROCESSING
            time.sleep(job.duration * self.time_unit)

        self.state = TaskState.FINISHED
        self.events.consumer_finished(self.id)
