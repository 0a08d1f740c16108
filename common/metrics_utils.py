"""
Formatting helpers for live samples and phase summaries.

The sample line format is also what the offline log analyzer parses, so both
sides import it from here.
"""

from datetime import datetime, timezone
from typing import Optional

from configuration import BYTES_PER_MB
from persistence.record import PhaseSummary, Sample


def format_bytes_to_mb(byte_size: float) -> str:
    return f"{byte_size / BYTES_PER_MB:.1f}"


def utc_time_string(now: Optional[datetime] = None) -> str:
    """Wall-clock UTC time as ``HH:MM:SS``."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime("%H:%M:%S")


def format_sample_line(sample: Sample) -> str:
    return (
        f"{sample.timestamp}: {sample.operation}: Ops {sample.ops_per_sec:.1f}/s "
        f"Throughput {format_bytes_to_mb(sample.throughput_bytes_per_sec)}MB/s"
    )


def format_summary_line(summary: PhaseSummary) -> str:
    return (
        f"{summary.operation} took {summary.elapsed_ms}ms. "
        f"Peak ops {summary.peak_ops_per_sec:.1f}/s "
        f"Avg ops {summary.avg_ops_per_sec:.1f}/s "
        f"Total size {format_bytes_to_mb(summary.total_bytes)}MB "
        f"Recoverable errors {summary.recoverable_error_count}"
    )


def format_scheduling_line(operation, object_count: int, threads: int, endpoints: int) -> str:
    return (
        f"{operation}: scheduling for {object_count} objects in {threads} threads "
        f"and {endpoints} buckets"
    )


def print_line(line: str) -> None:
    """Write one output line to stdout and flush it."""
    print(line, flush=True)
