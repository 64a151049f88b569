"""Run parameters and their validation."""
import math
from dataclasses import dataclass, asdict
from typing import Optional

DEFAULT_MAX_WAIT_MS = 15000  # longest a consumer waits for a job before rechecking producers
MIN_JOB_DURATION = 1
MAX_JOB_DURATION = 10
MIN_PRODUCE_DELAY = 1
MAX_PRODUCE_DELAY = 5


class ConfigurationError(ValueError):
    """Raised for run parameters that could never make a valid run."""

    def __init__(self, field_name: str, value, message: str):
        super().__init__(message)
        self.field_name = field_name
        self.value = value


@dataclass
class RunConfig:
    capacity: int
    jobs_per_producer: int
    producer_count: int
    consumer_count: int
    max_wait_ms: int = DEFAULT_MAX_WAIT_MS
    time_unit: float = 1.0
    seed: Optional[int] = None

    @property
    def total_jobs(self) -> int:
        return self.jobs_per_producer * self.producer_count

    @property
    def max_wait(self) -> float:
        """Consumer withdrawal timeout in seconds."""
        return self.max_wait_ms / 1000

    def validate(self) -> "RunConfig":
        for name in ("capacity", "jobs_per_producer", "producer_count", "consumer_count"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ConfigurationError(name, value, f"{name} must be a non-negative integer, got {value!r}")
        # Nothing can ever be pushed into a zero-sized buffer.
        if self.capacity == 0 and self.total_jobs > 0:
            raise ConfigurationError("capacity", 0, "capacity must be positive when jobs are produced")
        if self.max_wait_ms <= 0:
            raise ConfigurationError("max_wait_ms", self.max_wait_ms, "max_wait_ms must be positive")
        if not math.isfinite(self.time_unit) or self.time_unit < 0:
            raise ConfigurationError("time_unit", self.time_unit, "time_unit must be non-negative")
        return self

    def to_dict(self):
        return asdict(self)
