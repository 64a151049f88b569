"""
Command line entry point:
    jobline <capacity> <jobsPerProducer> <producerCount> <consumerCount>
"""
import argparse
import sys

from .config import DEFAULT_MAX_WAIT_MS, ConfigurationError, RunConfig
from .coordinator import Coordinator, TaskFailed
from .events import EventLog

EXIT_USAGE = 255
EXIT_FAILURE = 1

# positional name -> message prefix for an invalid value
POSITIONALS = [
    ("capacity", "Invalid queue size"),
    ("jobs_per_producer", "Invalid job count"),
    ("producer_count", "Invalid producers count"),
    ("consumer_count", "Invalid consumers count"),
]


class UsageError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class _ArgumentParser(argparse.ArgumentParser):
    """Reports problems on stdout and lets main() pick the exit status."""

    def error(self, message):
        raise UsageError(f"Wrong argument list: {message}\n{self.format_usage().rstrip()}")


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(prog="jobline",
                        description="Bounded-buffer producer/consumer job simulation")
    p.add_argument("values", nargs="*", metavar="N",
                   help="capacity, jobs per producer, producer count, consumer count")
    p.add_argument("--max-wait-ms", type=int, default=DEFAULT_MAX_WAIT_MS,
                   help="longest a consumer waits for a job before rechecking (ms)")
    p.add_argument("--time-unit", type=float, default=1.0,
                   help="real seconds per simulated second")
    p.add_argument("--seed", type=int, default=None, help="random seed")
    p.add_argument("--summary", action="store_true", help="print a run summary table")
    p.add_argument("--report", type=str, default=None, help="save the run summary as CSV")
    p.add_argument("--events", type=str, default=None, help="save every event as CSV")
    p.add_argument("--charts", type=str, default=None, help="directory for charts")
    return p


def parse_count(raw: str, message: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise UsageError(f"{message} {raw}")
    if value < 0:
        raise UsageError(f"{message} {raw}")
    return value


def parse_config(argv=None) -> "tuple[RunConfig, argparse.Namespace]":
    parser = build_parser()
    args = parser.parse_args(argv)
    if len(args.values) != len(POSITIONALS):
        raise UsageError(f"Wrong argument list\n{parser.format_usage().rstrip()}")

    counts = {name: parse_count(raw, message)
              for (name, message), raw in zip(POSITIONALS, args.values)}
    config = RunConfig(max_wait_ms=args.max_wait_ms, time_unit=args.time_unit,
                       seed=args.seed, **counts)
    try:
        config.validate()
    except ConfigurationError as e:
        messages = dict(POSITIONALS)
        if e.field_name in messages:
            raise UsageError(f"{messages[e.field_name]} {e.value}")
        raise UsageError(f"Invalid {e.field_name.replace('_', ' ')} {e.value}")
    return config, args


def main(argv=None) -> int:
    try:
        config, args = parse_config(argv)
    except UsageError as e:
        print(e.message)
        return EXIT_USAGE

    events = EventLog()
    coordinator = Coordinator(config, events=events)
    try:
        metrics = coordinator.run()
    except TaskFailed as e:
        print(f"Run failed: {e}")
        return EXIT_FAILURE
    except RuntimeError as e:
        print(f"Run failed: could not start task threads: {e}")
        return EXIT_FAILURE

    if args.summary or args.report or args.charts:
        # reporting pulls in pandas and matplotlib
        from .report import build_report, generate_charts, save_report, summary_table

        report = build_report(config, metrics, coordinator.elapsed)
        if args.summary:
            print("\n" + "=" * 80)
            print(summary_table([report]))
            print("=" * 80)
        if args.report:
            print(f"Report saved to: {save_report([report], args.report)}")
        if args.charts:
            generate_charts(report, args.charts)
            print(f"Charts saved to: {args.charts}")

    if args.events:
        from .report import save_events
        print(f"Events saved to: {save_events(events.snapshot(), args.events)}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
