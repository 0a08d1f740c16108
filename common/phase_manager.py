"""
Phase manager tracking the benchmark state machine.
"""

import enum
import time
import logging
from typing import Optional, Dict

from persistence.record import OperationKind

logger = logging.getLogger(__name__)


class BenchmarkState(enum.Enum):
    IDLE = "Idle"
    WRITING = "Writing"
    READING = "Reading"
    STATING = "Stating"
    REMOVING = "Removing"
    DONE = "Done"
    FAILED = "Failed"


PHASE_STATES = {
    OperationKind.WRITE: BenchmarkState.WRITING,
    OperationKind.READ: BenchmarkState.READING,
    OperationKind.STAT: BenchmarkState.STATING,
    OperationKind.REMOVE: BenchmarkState.REMOVING,
}

# Each state may only advance to the next one
NEXT_STATE = {
    BenchmarkState.IDLE: BenchmarkState.WRITING,
    BenchmarkState.WRITING: BenchmarkState.READING,
    BenchmarkState.READING: BenchmarkState.STATING,
    BenchmarkState.STATING: BenchmarkState.REMOVING,
    BenchmarkState.REMOVING: BenchmarkState.DONE,
}


class PhaseTransitionError(RuntimeError):
    """A phase was started out of order."""


class PhaseManager:
    """Enforces Idle -> Writing -> Reading -> Stating -> Removing -> Done."""

    def __init__(self):
        self.state = BenchmarkState.IDLE
        self.phase_start_ts: Optional[float] = None
        self.active = False
        self.completed: Dict[OperationKind, float] = {}

    def begin_phase(self, operation: OperationKind) -> None:
        """Enter the state of ``operation``.

        Raises:
            PhaseTransitionError: If ``operation`` is not the next phase
        """
        if self.active:
            raise PhaseTransitionError(
                f"Cannot start {operation} phase before {self.state.value} completes"
            )
        target = PHASE_STATES[operation]
        expected = NEXT_STATE.get(self.state)
        if target is not expected:
            raise PhaseTransitionError(
                f"Cannot start {operation} phase while {self.state.value}"
            )
        self.state = target
        self.active = True
        self.phase_start_ts = time.time()
        logger.info(f"Began phase: {operation}")

    def complete_phase(self, operation: OperationKind) -> None:
        if not self.active or self.state is not PHASE_STATES[operation]:
            raise PhaseTransitionError(
                f"Cannot complete {operation} phase while {self.state.value}"
            )
        duration = time.time() - self.phase_start_ts
        self.completed[operation] = duration
        self.active = False
        if operation is OperationKind.REMOVE:
            self.state = BenchmarkState.DONE
        logger.info(f"Completed phase: {operation} in {duration:.3f}s")

    def fail(self, error: BaseException) -> None:
        logger.error(f"Run aborted while {self.state.value}: {error}")
        self.state = BenchmarkState.FAILED
        self.active = False

    def __repr__(self) -> str:
        return f"PhaseManager(state='{self.state.value}')"
