import threading
import time
import unittest
from collections import Counter
from unittest import mock

from jobline.buffer import SharedBuffer
from jobline.config import ConfigurationError, RunConfig
from jobline.coordinator import Coordinator, TaskFailed, run_simulation
from jobline.events import CONSUMED, CONSUMER_FINISHED, PRODUCED, PRODUCER_FINISHED, EventLog


def fast_config(capacity, jobs, producers, consumers, **kwargs) -> RunConfig:
    kwargs.setdefault("max_wait_ms", 50)
    kwargs.setdefault("time_unit", 0.001)
    return RunConfig(capacity, jobs, producers, consumers, **kwargs)


class SlowProducerSizeBuffer(SharedBuffer):
    """Widens the gap after a push on producer threads."""

    def current_size(self):
        if threading.current_thread().name.startswith("producer"):
            time.sleep(0.05)
        return super().current_size()


class FlakyEventLog(EventLog):
    def produced(self, producer, job_id, duration):
        super().produced(producer, job_id, duration)
        raise RuntimeError("sink broke")


class CoordinatorTests(unittest.TestCase):
    def test_scenario_a_conserves_jobs(self) -> None:
        events = EventLog(quiet=True)
        coordinator = Coordinator(fast_config(5, 3, 2, 2), events=events)

        metrics = coordinator.run()

        self.assertEqual(metrics.total_produced, 6)
        self.assertEqual(metrics.total_consumed, 6)
        self.assertEqual(events.count(PRODUCED), 6)
        self.assertEqual(events.count(CONSUMED), 6)
        self.assertEqual(events.count(PRODUCER_FINISHED), 2)
        self.assertEqual(events.count(CONSUMER_FINISHED), 2)
        self.assertEqual(coordinator.buffer.current_size(), 0)
        self.assertEqual(coordinator.active.value, 0)
        self.assertTrue(all(not t.is_alive() for t in coordinator.threads))

    def test_scenario_b_no_producers(self) -> None:
        events = EventLog(quiet=True)
        # default 15 s timeout: consumers must not sit through it
        config = RunConfig(capacity=5, jobs_per_producer=3, producer_count=0, consumer_count=3)

        start = time.monotonic()
        metrics = Coordinator(config, events=events).run()

        self.assertLess(time.monotonic() - start, 1.0)
        self.assertEqual(metrics.total_consumed, 0)
        self.assertEqual(metrics.withdraw_timeouts, 0)
        self.assertEqual(events.count(CONSUMER_FINISHED), 3)

    def test_scenario_c_single_job_many_consumers(self) -> None:
        events = EventLog(quiet=True)
        metrics = Coordinator(fast_config(1, 1, 1, 3), events=events).run()

        self.assertEqual(metrics.total_produced, 1)
        self.assertEqual(metrics.total_consumed, 1)
        self.assertEqual(sum(metrics.consumed_by.values()), 1)
        self.assertEqual(events.count(CONSUMER_FINISHED), 3)

    def test_capacity_never_exceeded(self) -> None:
        coordinator = Coordinator(fast_config(2, 10, 4, 1, time_unit=0.0005),
                                  events=EventLog(quiet=True))
        metrics = coordinator.run()

        self.assertEqual(metrics.total_produced, 40)
        self.assertEqual(metrics.total_consumed, 40)
        self.assertTrue(all(0 <= size <= 2 for size in metrics.buffer_history))
        self.assertEqual(metrics.produced_by, {1: 10, 2: 10, 3: 10, 4: 10})

    def test_many_tasks_conserve_jobs(self) -> None:
        events = EventLog(quiet=True)
        metrics = Coordinator(fast_config(3, 8, 6, 4, time_unit=0.0002), events=events).run()

        produced = sorted((e.job_id, e.duration) for e in events.snapshot() if e.kind == PRODUCED)
        consumed = sorted((e.job_id, e.duration) for e in events.snapshot() if e.kind == CONSUMED)
        self.assertEqual(metrics.total_produced, 48)
        self.assertEqual(produced, consumed)

    def test_without_consumers_jobs_stay_buffered(self) -> None:
        config = fast_config(4, 2, 2, 0)
        coordinator = Coordinator(config, events=EventLog(quiet=True))

        metrics = coordinator.run()

        self.assertEqual(metrics.total_produced, 4)
        self.assertEqual(coordinator.buffer.current_size(), 4)

    def test_seed_makes_jobs_repeatable(self) -> None:
        def produced_jobs():
            events = EventLog(quiet=True)
            Coordinator(fast_config(5, 4, 2, 2, seed=42), events=events).run()
            return sorted((e.task, e.job_id, e.duration) for e in events.snapshot() if e.kind == PRODUCED)

        self.assertEqual(produced_jobs(), produced_jobs())

    def test_task_failure_is_fatal(self) -> None:
        coordinator = Coordinator(fast_config(2, 3, 1, 2), events=FlakyEventLog(quiet=True))

        with self.assertRaises(TaskFailed) as ctx:
            coordinator.run()

        self.assertEqual(ctx.exception.task_name, "producer-1")
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)
        self.assertTrue(all(not t.is_alive() for t in coordinator.threads))
        self.assertEqual(coordinator.active.value, 0)

    def test_every_job_logged_as_produced_before_consumed(self) -> None:
        for _ in range(5):
            events = EventLog(quiet=True)
            coordinator = Coordinator(fast_config(2, 4, 2, 2, time_unit=0.0005), events=events)
            coordinator.buffer = SlowProducerSizeBuffer(2)
            coordinator.run()

            pending = Counter()
            for e in events.snapshot():
                key = (e.job_id, e.duration)
                if e.kind == PRODUCED:
                    pending[key] += 1
                elif e.kind == CONSUMED:
                    self.assertGreater(pending[key], 0, f"job {key} consumed before it was produced")
                    pending[key] -= 1
            self.assertEqual(sum(pending.values()), 0)

    def test_failed_thread_start_joins_started_tasks(self) -> None:
        original_start = threading.Thread.start
        calls = []

        def flaky_start(thread):
            calls.append(thread.name)
            if thread.name == "producer-2":
                raise RuntimeError("can't start new thread")
            original_start(thread)

        coordinator = Coordinator(fast_config(1, 3, 2, 2), events=EventLog(quiet=True))
        with mock.patch.object(threading.Thread, "start", flaky_start):
            with self.assertRaises(RuntimeError) as ctx:
                coordinator.run()

        self.assertNotIsInstance(ctx.exception, TaskFailed)
        self.assertEqual(calls, ["consumer-1", "consumer-2", "producer-1", "producer-2"])
        self.assertEqual([t.name for t in coordinator.threads], ["consumer-1", "consumer-2", "producer-1"])
        self.assertTrue(all(not t.is_alive() for t in coordinator.threads))
        self.assertEqual(coordinator.metrics.total_produced, 3)
        self.assertEqual(coordinator.metrics.total_consumed, 3)

    def test_failed_consumer_start_releases_other_consumers(self) -> None:
        original_start = threading.Thread.start

        def flaky_start(thread):
            if thread.name == "consumer-2":
                raise RuntimeError("can't start new thread")
            original_start(thread)

        coordinator = Coordinator(fast_config(2, 1, 1, 2), events=EventLog(quiet=True))
        with mock.patch.object(threading.Thread, "start", flaky_start):
            with self.assertRaises(RuntimeError):
                coordinator.run()

        self.assertEqual([t.name for t in coordinator.threads], ["consumer-1"])
        self.assertFalse(coordinator.threads[0].is_alive())

    def test_invalid_config_starts_nothing(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            Coordinator(fast_config(0, 1, 1, 1))
        self.assertEqual(ctx.exception.field_name, "capacity")

        with self.assertRaises(ConfigurationError):
            Coordinator(fast_config(1, -1, 1, 1))

        for bad in (float("nan"), float("inf"), -0.5):
            with self.subTest(time_unit=bad):
                with self.assertRaises(ConfigurationError) as ctx:
                    Coordinator(fast_config(2, 1, 1, 1, time_unit=bad))
                self.assertEqual(ctx.exception.field_name, "time_unit")

    def test_zero_capacity_allowed_without_jobs(self) -> None:
        metrics = Coordinator(fast_config(0, 0, 2, 2), events=EventLog(quiet=True)).run()
        self.assertEqual(metrics.total_produced, 0)

    def test_run_simulation_returns_elapsed(self) -> None:
        metrics, elapsed = run_simulation(fast_config(2, 1, 1, 1), events=EventLog(quiet=True))
        self.assertEqual(metrics.total_consumed, 1)
        self.assertGreater(elapsed, 0)


if __name__ == "__main__":
    unittest.main()
