"""
Coordinator:
- owns the SharedBuffer and the ActiveProducerCount of one run
- starts one thread per producer and per consumer
- joins them all and reports the first task failure, if any
"""
import random
import threading
import time
from typing import List, Optional, Tuple

from .buffer import ActiveProducerCount, SharedBuffer
from .config import RunConfig
from .events import EventLog
from .metrics import RunMetrics
from .tasks import ConsumerTask, ProducerTask


class TaskFailed(RuntimeError):
    """A producer or consumer raised; the run is not trustworthy."""

    def __init__(self, task_name: str, error: BaseException):
        super().__init__(f"{task_name} failed: {error}")
        self.task_name = task_name
        self.error = error


class Coordinator:

    def __init__(self, config: RunConfig, events: Optional[EventLog] = None,
                 metrics: Optional[RunMetrics] = None):
        self.config = config.validate()
        self.events = events if events is not None else EventLog()
        self.metrics = metrics if metrics is not None else RunMetrics()
        self.rng = random.Random(config.seed)

        self.buffer = SharedBuffer(config.capacity)
        self.active = ActiveProducerCount(expected=config.producer_count)

        self.producers: List[ProducerTask] = []
        self.consumers: List[ConsumerTask] = []
        self.threads: List[threading.Thread] = []
        self.failures: List[Tuple[str, BaseException]] = []
        self._failures_lock = threading.Lock()
        self.elapsed = 0.0

    def _make_tasks(self):
        cfg = self.config
        # Task numbers are 1-based, as printed in the event lines.
        for i in range(1, cfg.producer_count + 1):
            self.producers.append(ProducerTask(
                i, cfg.jobs_per_producer, self.buffer, self.active, self.events,
                metrics=self.metrics,
                rng=random.Random(self.rng.getrandbits(64)),
                time_unit=cfg.time_unit,
            ))
        for i in range(1, cfg.consumer_count + 1):
            self.consumers.append(ConsumerTask(
                i, self.buffer, self.active, self.events,
                metrics=self.metrics,
                max_wait_ms=cfg.max_wait_ms,
                time_unit=cfg.time_unit,
            ))

    def _guarded(self, name: str, body):
        def target():
            try:
                body()
            except Exception as e:
                with self._failures_lock:
                    self.failures.append((name, e))
        return target

    def run(self) -> RunMetrics:
        start = time.monotonic()
        self._make_tasks()

        consumer_threads = [
            threading.Thread(target=self._guarded(f"consumer-{c.id}", c.run),
                             name=f"consumer-{c.id}", daemon=True)
            for c in self.consumers]
        producer_threads = [
            threading.Thread(target=self._guarded(f"producer-{p.id}", p.run),
                             name=f"producer-{p.id}", daemon=True)
            for p in self.producers]

        # Consumers go first so that jobs from any started producer get drained.
        started: List[threading.Thread] = []
        try:
            for t in consumer_threads + producer_threads:
                t.start()
                started.append(t)
        except RuntimeError:
            # A failed start aborts the run; let what did start wind down.
            self.active.abandon(sum(1 for t in producer_threads if t not in started))
            for t in started:
                t.join()
            self.threads = started
            raise

        self.threads = started
        for t in self.threads:
            t.join()

        self.elapsed = time.monotonic() - start

        if self.failures:
            name, error = self.failures[0]
            raise TaskFailed(name, error) from error
        return self.metrics


def run_simulation(config: RunConfig, events: Optional[EventLog] = None) -> Tuple[RunMetrics, float]:
    """Run one full producer/consumer session and return its metrics and wall time."""
    coordinator = Coordinator(config, events=events)
    metrics = coordinator.run()
    return metrics, coordinator.elapsed
