import threading
from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class RunMetrics:
    total_produced: int = 0
    total_consumed: int = 0
    withdraw_timeouts: int = 0
    producer_wait_times: List[float] = field(default_factory=list)
    consumer_wait_times: List[float] = field(default_factory=list)
    buffer_history: List[int] = field(default_factory=list)
    produced_by: Dict[int, int] = field(default_factory=dict)
    consumed_by: Dict[int, int] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_push(self, producer_id: int, wait_time: float, occupancy: int):
        with self.lock:
            self.total_produced += 1
            self.producer_wait_times.append(wait_time)
            self.buffer_history.append(occupancy)
            self.produced_by[producer_id] = self.produced_by.get(producer_id, 0) + 1

    def record_withdraw(self, consumer_id: int, wait_time: float, occupancy: int):
        with self.lock:
            self.total_consumed += 1
            self.consumer_wait_times.append(wait_time)
            self.buffer_history.append(occupancy)
            self.consumed_by[consumer_id] = self.consumed_by.get(consumer_id, 0) + 1

    def record_timeout(self):
        with self.lock:
            self.withdraw_timeouts += 1

    @staticmethod
    def _mean(values: List[float]) -> float:
        return sum(values) / len(values) if values else 0

    def avg_producer_wait(self) -> float:
        with self.lock:
            return self._mean(self.producer_wait_times)

    def avg_consumer_wait(self) -> float:
        with self.lock:
            return self._mean(self.consumer_wait_times)

    def efficiency(self) -> float:
        """Consumed jobs as a percentage of produced jobs."""
        with self.lock:
            return (self.total_consumed / self.total_produced * 100) if self.total_produced > 0 else 0
