"""Run summaries: CSV export with pandas, charts with matplotlib/seaborn."""
import os
from typing import Dict, Iterable, List

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .config import RunConfig
from .events import Event
from .metrics import RunMetrics

SUMMARY_COLUMNS = [
    "capacity", "jobs_per_producer", "producer_count", "consumer_count",
    "total_produced", "total_consumed", "withdraw_timeouts", "efficiency",
]


def build_report(config: RunConfig, metrics: RunMetrics, elapsed: float) -> Dict:
    with metrics.lock:
        history = list(metrics.buffer_history)
        produced, consumed = metrics.total_produced, metrics.total_consumed
        timeouts = metrics.withdraw_timeouts
    return {
        **config.to_dict(),
        "total_produced": produced,
        "total_consumed": consumed,
        "withdraw_timeouts": timeouts,
        "execution_time": round(elapsed, 2),
        "avg_producer_wait": metrics.avg_producer_wait(),
        "avg_consumer_wait": metrics.avg_consumer_wait(),
        "efficiency": metrics.efficiency(),
        "max_occupancy": max(history) if history else 0,
        "buffer_history": history,
    }


def reports_frame(reports: Iterable[Dict]) -> pd.DataFrame:
    rows = [{k: v for k, v in r.items() if k != "buffer_history"} for r in reports]
    return pd.DataFrame(rows)


def summary_table(reports: Iterable[Dict]) -> str:
    return reports_frame(reports)[SUMMARY_COLUMNS].to_string(index=False)


def save_report(reports: List[Dict], path: str) -> str:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    reports_frame(reports).to_csv(path, index=False)
    return path


def save_events(events: Iterable[Event], path: str) -> str:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    df = pd.DataFrame([e.to_dict() for e in events],
                      columns=["kind", "task", "job_id", "duration", "timestamp"])
    df.to_csv(path, index=False)
    return path


def generate_charts(report: Dict, out_dir: str) -> List[str]:
    """Draw buffer occupancy and average waits for one run. Returns written files."""
    os.makedirs(out_dir, exist_ok=True)
    sns.set_theme(style="whitegrid")
    written = []

    history = report["buffer_history"]
    plt.figure(figsize=(10, 4))
    if history:
        plt.plot(history, linewidth=1)
    plt.axhline(y=report["capacity"], color="r", linestyle="--", label="Capacity")
    plt.title("Buffer occupancy")
    plt.xlabel("Operation")
    plt.ylabel("Jobs in buffer")
    plt.legend()
    path = os.path.join(out_dir, "buffer_occupancy.png")
    plt.savefig(path)
    plt.close()
    written.append(path)

    plt.figure(figsize=(8, 5))
    plt.bar(["Producers", "Consumers"],
            [report["avg_producer_wait"], report["avg_consumer_wait"]],
            color=["#3498db", "#2ecc71"], edgecolor="black")
    plt.title("Average wait on the buffer")
    plt.ylabel("Seconds")
    path = os.path.join(out_dir, "wait_times.png")
    plt.savefig(path)
    plt.close()
    written.append(path)

    return written
