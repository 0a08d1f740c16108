"""
Error classification and retry policy shared by every storage endpoint.

The policy is composed rather than inherited: a classifier maps a transport
failure to an ``ErrorKind`` and a fallback decides for the kinds the policy
has no explicit rule for. ``RetryPolicy.run`` is the retry executor that
wraps a single storage call.
"""

import asyncio
import enum
import errno
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator, NamedTuple, Optional

import aiohttp
from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    ConnectionError as BotoConnectionError,
    HTTPClientError,
    IncompleteReadError,
    ReadTimeoutError,
)

from configuration import (
    MAXIMUM_ATTEMPTS,
    RETRY_DELAY_MS,
    RECOVERABLE_HTTP_STATUSES,
    MS_PER_SECOND,
)
from systems.errors import NotFoundError, RetryExhausted

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    TRANSIENT = "TRANSIENT"
    CLIENT_ERROR = "CLIENT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN = "UNKNOWN"


NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})

TRANSIENT_ERROR_CODES = frozenset({
    "RequestTimeout",
    "RequestTimeoutException",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "ThrottledException",
    "RequestThrottled",
    "RequestThrottledException",
    "TooManyRequestsException",
    "ProvisionedThroughputExceededException",
    "RequestLimitExceeded",
    "BandwidthLimitExceeded",
    "LimitExceededException",
    "TransactionInProgressException",
    "PriorRequestNotComplete",
})

TRANSIENT_HTTP_STATUSES = frozenset({429, 502, 503, 504})

# Socket failures that are always worth another attempt
RECOVERABLE_ERRNOS = frozenset({errno.EADDRNOTAVAIL, errno.ECONNRESET})


def http_status_of(error: BaseException) -> Optional[int]:
    """Return the HTTP status carried by a botocore ClientError, if any."""
    if isinstance(error, ClientError):
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        return int(status) if status else None
    return None


def error_code_of(error: BaseException) -> str:
    if isinstance(error, ClientError):
        return str(error.response.get("Error", {}).get("Code", ""))
    return ""


def _exception_chain(error: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def classify_error(error: BaseException) -> ErrorKind:
    """Map a failure raised by the storage transport to an ErrorKind."""
    if isinstance(error, NotFoundError):
        return ErrorKind.NOT_FOUND

    if isinstance(error, ClientError):
        code = error_code_of(error)
        status = http_status_of(error) or 0
        if code in NOT_FOUND_CODES or status == 404:
            return ErrorKind.NOT_FOUND
        if code in TRANSIENT_ERROR_CODES or status in TRANSIENT_HTTP_STATUSES:
            return ErrorKind.TRANSIENT
        if status >= 500:
            return ErrorKind.SERVER_ERROR
        if 400 <= status < 500:
            return ErrorKind.CLIENT_ERROR
        return ErrorKind.UNKNOWN

    # Timeouts first: asyncio.TimeoutError is an OSError on recent Pythons
    if isinstance(error, (ConnectTimeoutError, ReadTimeoutError, asyncio.TimeoutError)):
        return ErrorKind.TRANSIENT

    if isinstance(error, (BotoConnectionError, HTTPClientError, IncompleteReadError,
                          aiohttp.ClientError, OSError)):
        return ErrorKind.NETWORK_ERROR

    return ErrorKind.UNKNOWN


def is_recoverable_network_failure(error: BaseException) -> bool:
    """True for address-unavailable/connection-reset failures and HTTP 500/522."""
    for exc in _exception_chain(error):
        if isinstance(exc, OSError) and exc.errno in RECOVERABLE_ERRNOS:
            return True
        if http_status_of(exc) in RECOVERABLE_HTTP_STATUSES:
            return True
    return False


def retry_within_attempt_budget(kind: ErrorKind, attempt_count: int, max_attempts: int) -> bool:
    """Default fallback: keep retrying while attempts remain."""
    return attempt_count < max_attempts


@dataclass(frozen=True)
class RetryToken:
    attempt_count: int = 0
    delay_ms: int = RETRY_DELAY_MS
    cost: int = 0


class RetryDecision(NamedTuple):
    retry: bool
    delay_ms: int


Classifier = Callable[[BaseException], ErrorKind]
Fallback = Callable[[ErrorKind, int, int], bool]


class RetryPolicy:
    """Constant-delay retry policy with a cumulative retry counter.

    Attributes:
        max_attempts: Attempt ceiling for one logical request
        delay_ms: Delay before every retry, independent of the attempt number
        total_retry_count: Retries granted since the last reset
    """

    def __init__(
        self,
        max_attempts: int = MAXIMUM_ATTEMPTS,
        delay_ms: int = RETRY_DELAY_MS,
        classifier: Classifier = classify_error,
        fallback: Fallback = retry_within_attempt_budget,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.max_attempts = max_attempts
        self.delay_ms = delay_ms
        self.classifier = classifier
        self.fallback = fallback
        self._sleep = sleep
        self.total_retry_count = 0

    def decide(self, error: BaseException, attempt_count: int) -> RetryDecision:
        """Decide whether a request that failed ``attempt_count`` times is retried.

        Raises:
            NotFoundError: The object does not exist
            RetryExhausted: ``attempt_count`` reached the attempt ceiling
        """
        kind = self.classifier(error)

        if kind is ErrorKind.NOT_FOUND:
            if isinstance(error, NotFoundError):
                raise error
            raise NotFoundError(str(error)) from error

        if attempt_count >= self.max_attempts:
            raise RetryExhausted(
                f"Giving up after {attempt_count} attempts: {error}", attempt_count
            ) from error

        if kind in (ErrorKind.TRANSIENT, ErrorKind.SERVER_ERROR, ErrorKind.CLIENT_ERROR):
            logger.info(f"Retrying on {kind.value} error")
            return RetryDecision(True, self.delay_ms)

        if is_recoverable_network_failure(error):
            logger.info(f"Recovering from error {error!r}")
            return RetryDecision(True, self.delay_ms)

        retry = self.fallback(kind, attempt_count, self.max_attempts)
        if retry:
            logger.info(f"Recovering from error {error!r}")
        return RetryDecision(retry, self.delay_ms)

    def acquire_initial_retry_token(self) -> RetryToken:
        return RetryToken(attempt_count=0, delay_ms=self.delay_ms, cost=0)

    def refresh_retry_token_for_retry(self, token: RetryToken,
                                      error: BaseException) -> Optional[RetryToken]:
        """Return the token for the next attempt, or None when no retry is granted."""
        decision = self.decide(error, token.attempt_count + 1)
        if not decision.retry:
            return None
        self.total_retry_count += 1
        return RetryToken(
            attempt_count=token.attempt_count + 1,
            delay_ms=decision.delay_ms,
            cost=0,
        )

    def reset(self) -> None:
        self.total_retry_count = 0

    async def run(self, operation: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Await ``operation(*args, **kwargs)``, retrying failures per this policy."""
        token = self.acquire_initial_retry_token()
        while True:
            try:
                return await operation(*args, **kwargs)
            except Exception as error:
                token = self.refresh_retry_token_for_retry(token, error)
                if token is None:
                    raise
            await self._sleep(token.delay_ms / MS_PER_SECOND)
