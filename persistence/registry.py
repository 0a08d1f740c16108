"""
In-memory registry of the objects written during a benchmark run.
"""

import logging
from typing import Dict, Iterator

from persistence.record import ObjectRecord

logger = logging.getLogger(__name__)


class ObjectRegistry:
    """Objects created by the write phase, indexed by sequence number and key.

    Every sequence id is written once by the worker that claimed it; later
    phases only read.
    """

    def __init__(self):
        self._by_sequence: Dict[int, ObjectRecord] = {}
        self._by_key: Dict[str, ObjectRecord] = {}

    def add(self, record: ObjectRecord) -> None:
        """Register a freshly written object.

        Raises:
            ValueError: If the sequence id or key was already registered
        """
        if record.sequence_id in self._by_sequence:
            raise ValueError(f"Sequence id {record.sequence_id} already registered")
        if record.key in self._by_key:
            raise ValueError(f"Key {record.key} already registered")
        self._by_sequence[record.sequence_id] = record
        self._by_key[record.key] = record

    def get(self, sequence_id: int) -> ObjectRecord:
        try:
            return self._by_sequence[sequence_id]
        except KeyError:
            raise KeyError(f"No object recorded for sequence id {sequence_id}") from None

    def is_complete(self, count: int) -> bool:
        """True when sequence ids are exactly ``0..count-1``."""
        return len(self._by_sequence) == count and all(
            i in self._by_sequence for i in range(count)
        )

    def __len__(self) -> int:
        return len(self._by_sequence)

    def __iter__(self) -> Iterator[ObjectRecord]:
        for sequence_id in sorted(self._by_sequence):
            yield self._by_sequence[sequence_id]

    def __repr__(self) -> str:
        return f"ObjectRegistry(objects={len(self)})"
