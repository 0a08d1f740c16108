"""
Error types raised by storage endpoints and benchmark phases.
"""


class BenchmarkError(Exception):
    """Base class for benchmark errors."""


class NotFoundError(BenchmarkError):
    """The backend reported that the object does not exist. Never retried."""


class RetryExhausted(BenchmarkError):
    """A request failed on every attempt the retry policy allowed."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class IntegrityMismatch(BenchmarkError):
    """Downloaded etag or size differs from what the write phase recorded."""

    def __init__(self, key: str, expected_etag: str, actual_etag: str,
                 expected_size: int, actual_size: int):
        super().__init__(
            f"Check failed for {key}: size {expected_size} == {actual_size} : "
            f"etag {expected_etag} == {actual_etag}"
        )
        self.key = key
        self.expected_etag = expected_etag
        self.actual_etag = actual_etag
        self.expected_size = expected_size
        self.actual_size = actual_size


class ProtocolError(BenchmarkError):
    """The backend response is missing a field the benchmark relies on."""
