"""Serialized output sink shared by every task of a run."""
import sys
import threading
import time
from dataclasses import dataclass, asdict
from typing import List, Optional, TextIO

PRODUCED = "PRODUCED"
CONSUMED = "CONSUMED"
PRODUCER_FINISHED = "PRODUCER_FINISHED"
CONSUMER_FINISHED = "CONSUMER_FINISHED"


@dataclass
class Event:
    kind: str
    task: int
    job_id: Optional[int] = None
    duration: Optional[int] = None
    timestamp: float = 0.0

    def to_dict(self):
        return asdict(self)

    def format(self) -> str:
        if self.kind == PRODUCED:
            return f"Producer({self.task}): Job id {self.job_id} duration {self.duration}"
        if self.kind == CONSUMED:
            return f"Consumer({self.task}): Job id {self.job_id} executing sleep duration {self.duration}"
        if self.kind == PRODUCER_FINISHED:
            return f"Producer({self.task}) no more jobs to generate."
        if self.kind == CONSUMER_FINISHED:
            return f"Consumer({self.task}): No more jobs left."
        raise ValueError(f"unknown event kind {self.kind!r}")


class EventLog:
    """
    One writer for the whole run. Lines are printed under a lock so
    concurrent tasks never interleave, and every event is kept for the
    CSV export.
    """

    def __init__(self, stream: Optional[TextIO] = None, quiet: bool = False):
        self.stream = stream
        self.quiet = quiet
        self.events: List[Event] = []
        self.lock = threading.Lock()

    def emit(self, kind: str, task: int, job_id: Optional[int] = None,
             duration: Optional[int] = None) -> Event:
        event = Event(kind, task, job_id, duration, time.time())
        with self.lock:
            self.events.append(event)
            if not self.quiet:
                print(event.format(), file=self.stream or sys.stdout, flush=True)
        return event

    def produced(self, producer: int, job_id: int, duration: int) -> Event:
        return self.emit(PRODUCED, producer, job_id, duration)

    def consumed(self, consumer: int, job_id: int, duration: int) -> Event:
        return self.emit(CONSUMED, consumer, job_id, duration)

    def producer_finished(self, producer: int) -> Event:
        return self.emit(PRODUCER_FINISHED, producer)

    def consumer_finished(self, consumer: int) -> Event:
        return self.emit(CONSUMER_FINISHED, consumer)

    def snapshot(self) -> List[Event]:
        with self.lock:
            return list(self.events)

    def count(self, kind: str) -> int:
        with self.lock:
            return sum(1 for e in self.events if e.kind == kind)
