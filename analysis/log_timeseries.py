"""
Rebuild per-operation throughput time series from benchmark logs.

Several logs of one run (one per shard or host) are merged by summing the
samples that share a timestamp. Missing seconds are approximated by a single
linear midpoint and the peak ops/s per operation is extracted.

Timestamps are ``HH:MM:SS`` strings sorted lexicographically, so ordering and
gap detection are only correct within one minute window: the gap check looks
at the seconds field alone and the synthesized point reuses the later
timestamp's ``HH:MM:`` prefix.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Set

import pandas as pd

from persistence.record import OperationKind

logger = logging.getLogger(__name__)

TimeSeries = Dict[str, float]

_OPERATIONS = "|".join(op.value for op in OperationKind)

SCHEDULING_PATTERN = re.compile(rf"({_OPERATIONS}): scheduling")
SAMPLE_PATTERN = re.compile(rf"(\d{{2}}:\d{{2}}:\d{{2}}): ({_OPERATIONS}): Ops (\d+\.\d+)/s")


def empty_stats() -> Dict[OperationKind, TimeSeries]:
    return {op: {} for op in OperationKind}


def parse_lines(lines: Iterable[str]) -> Dict[OperationKind, TimeSeries]:
    """Collect the sample lines of one log; other lines are skipped."""
    stats = empty_stats()
    current_operation: Optional[OperationKind] = None

    for line in lines:
        scheduling = SCHEDULING_PATTERN.search(line)
        if scheduling:
            current_operation = OperationKind(scheduling.group(1))
            logger.debug(f"Log enters {current_operation} phase")

        sample = SAMPLE_PATTERN.search(line)
        if sample:
            timestamp = sample.group(1)
            operation = OperationKind(sample.group(2))
            ops = float(sample.group(3))
            series = stats[operation]
            series[timestamp] = series.get(timestamp, 0.0) + ops

    return stats


def parse_log_file(path: str) -> Dict[OperationKind, TimeSeries]:
    with open(path, "r", encoding="utf-8", errors="replace") as log_file:
        return parse_lines(log_file)


def _seconds_of(timestamp: str) -> int:
    return int(timestamp.split(":")[2])


def approximate_missing_seconds(series: TimeSeries) -> List[str]:
    """Insert one midpoint sample after every gap; returns the inserted timestamps.

    Only the second right after ``prev`` is synthesized, however long the gap.
    """
    inserted = []
    sorted_times = sorted(series)
    for prev_time, current_time in zip(sorted_times, sorted_times[1:]):
        prev_seconds = _seconds_of(prev_time)
        current_seconds = _seconds_of(current_time)

        if current_seconds - prev_seconds > 1:
            missing_second = f"{current_time[:-2]}{prev_seconds + 1:02d}"
            series[missing_second] = (series[prev_time] + series[current_time]) / 2
            inserted.append(missing_second)
    return inserted


def peak_of(series: TimeSeries) -> float:
    return max(series.values(), default=0.0)


class LogTimeSeriesReconstructor:
    """Merges sample lines from any number of logs into per-operation series."""

    def __init__(self):
        self.series: Dict[OperationKind, TimeSeries] = empty_stats()
        self.synthesized: Dict[OperationKind, Set[str]] = {op: set() for op in OperationKind}
        self.sources = 0

    def merge(self, stats: Dict[OperationKind, TimeSeries]) -> None:
        for operation, series in stats.items():
            target = self.series[operation]
            for timestamp, ops in series.items():
                target[timestamp] = target.get(timestamp, 0.0) + ops
        self.sources += 1

    def add_lines(self, lines: Iterable[str]) -> None:
        self.merge(parse_lines(lines))

    def add_file(self, path: str) -> None:
        logger.debug(f"Reading log file {path}")
        self.merge(parse_log_file(path))

    def fill_gaps(self) -> None:
        for operation, series in self.series.items():
            inserted = approximate_missing_seconds(series)
            self.synthesized[operation].update(inserted)
            if inserted:
                logger.debug(f"{operation}: approximated {len(inserted)} missing seconds")

    def peak_performance(self) -> Dict[OperationKind, float]:
        return {operation: peak_of(series) for operation, series in self.series.items()}

    def to_frame(self) -> pd.DataFrame:
        """All points as a DataFrame, ordered by operation then timestamp."""
        rows = [
            {
                'timestamp': timestamp,
                'operation': operation.value,
                'ops_per_sec': series[timestamp],
                'synthesized': timestamp in self.synthesized[operation],
            }
            for operation, series in self.series.items()
            for timestamp in sorted(series)
        ]
        return pd.DataFrame(rows, columns=['timestamp', 'operation', 'ops_per_sec', 'synthesized'])


def summarize_peak_performance(log_files: Iterable[str]) -> Dict[OperationKind, float]:
    reconstructor = LogTimeSeriesReconstructor()
    for path in log_files:
        reconstructor.add_file(path)
    reconstructor.fill_gaps()
    return reconstructor.peak_performance()


def _format_number(value: float) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def format_peak_performance(peaks: Dict[OperationKind, float]) -> str:
    body = ", ".join(
        f"{operation.value}: {_format_number(peaks.get(operation, 0.0))}" for operation in OperationKind
    )
    return f"Peak Performance: {{{body}}}"
