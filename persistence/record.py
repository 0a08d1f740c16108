"""
Basic data structures for the object storage benchmark.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


class OperationKind(enum.Enum):
    """The four benchmark phases, in execution order."""

    WRITE = "Write"
    READ = "Read"
    STAT = "Stat"
    REMOVE = "Remove"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ObjectStat:
    """Object metadata as reported by ``head`` or ``get``."""

    etag: str
    size: int
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class StoredObject:
    """Result of a successful ``put``."""

    etag: str
    size: int


@dataclass(frozen=True)
class ObjectRecord:
    """An object created by the write phase."""

    sequence_id: int
    key: str
    etag: str
    size: int
    endpoint: Any = None


@dataclass(frozen=True)
class Sample:
    """One live throughput sample of a running phase."""

    timestamp: str
    operation: OperationKind
    ops_per_sec: float
    throughput_bytes_per_sec: float


@dataclass(frozen=True)
class PhaseSummary:
    """Final figures of a completed phase."""

    operation: OperationKind
    elapsed_ms: int
    peak_ops_per_sec: float
    avg_ops_per_sec: float
    total_bytes: int
    total_count: int
    recoverable_error_count: int
