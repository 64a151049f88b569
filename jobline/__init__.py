"""Bounded-buffer producer/consumer job simulation."""
from .buffer import ActiveProducerCount, Job, SharedBuffer
from .config import ConfigurationError, RunConfig
from .coordinator import Coordinator, TaskFailed, run_simulation
from .events import EventLog
from .metrics import RunMetrics
from .tasks import ConsumerTask, ProducerTask, TaskState

__all__ = [
    "ActiveProducerCount",
    "ConfigurationError",
    "ConsumerTask",
    "Coordinator",
    "EventLog",
    "Job",
    "ProducerTask",
    "RunConfig",
    "RunMetrics",
    "SharedBuffer",
    "TaskFailed",
    "TaskState",
    "run_simulation",
]
