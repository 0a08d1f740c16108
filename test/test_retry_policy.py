"""
Tests for error classification and the retry policy.
"""

import asyncio
import errno
import os
import sys
import unittest

import aiohttp
from botocore.exceptions import ConnectTimeoutError, EndpointConnectionError, ReadTimeoutError

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from configuration import MAXIMUM_ATTEMPTS, RETRY_DELAY_MS
from systems.errors import NotFoundError, RetryExhausted
from systems.retry import (
    ErrorKind,
    RetryPolicy,
    RetryToken,
    classify_error,
    is_recoverable_network_failure,
)
from fakes import RecordingSleep, client_error


RETRYABLE_ERRORS = {
    ErrorKind.TRANSIENT: lambda: client_error(503, "SlowDown"),
    ErrorKind.SERVER_ERROR: lambda: client_error(501, "NotImplemented"),
    ErrorKind.CLIENT_ERROR: lambda: client_error(403, "AccessDenied"),
    ErrorKind.NETWORK_ERROR: lambda: EndpointConnectionError(endpoint_url="http://storage:9000"),
}


class TestClassifyError(unittest.TestCase):
    """Test mapping of transport failures to error kinds."""

    def test_not_found(self):
        self.assertIs(classify_error(client_error(404, "NoSuchKey")), ErrorKind.NOT_FOUND)
        self.assertIs(classify_error(client_error(404, "NotFound")), ErrorKind.NOT_FOUND)
        self.assertIs(classify_error(NotFoundError("gone")), ErrorKind.NOT_FOUND)

    def test_http_statuses(self):
        self.assertIs(classify_error(client_error(503, "ServiceUnavailable")), ErrorKind.TRANSIENT)
        self.assertIs(classify_error(client_error(429, "TooManyRequests")), ErrorKind.TRANSIENT)
        self.assertIs(classify_error(client_error(500, "InternalError")), ErrorKind.SERVER_ERROR)
        self.assertIs(classify_error(client_error(522, "ConnectionTimedOut")), ErrorKind.SERVER_ERROR)
        self.assertIs(classify_error(client_error(403, "AccessDenied")), ErrorKind.CLIENT_ERROR)

    def test_throttling_code_is_transient(self):
        self.assertIs(classify_error(client_error(400, "Throttling")), ErrorKind.TRANSIENT)

    def test_timeouts_are_transient(self):
        self.assertIs(classify_error(ReadTimeoutError(endpoint_url="http://x")), ErrorKind.TRANSIENT)
        self.assertIs(classify_error(ConnectTimeoutError(endpoint_url="http://x")), ErrorKind.TRANSIENT)
        self.assertIs(classify_error(asyncio.TimeoutError()), ErrorKind.TRANSIENT)

    def test_network_errors(self):
        self.assertIs(classify_error(EndpointConnectionError(endpoint_url="http://x")),
                      ErrorKind.NETWORK_ERROR)
        self.assertIs(classify_error(ConnectionResetError(errno.ECONNRESET, "reset")),
                      ErrorKind.NETWORK_ERROR)
        self.assertIs(classify_error(aiohttp.ClientPayloadError("truncated")),
                      ErrorKind.NETWORK_ERROR)

    def test_unknown(self):
        self.assertIs(classify_error(ValueError("boom")), ErrorKind.UNKNOWN)


class TestRecoverableNetworkFailure(unittest.TestCase):

    def test_errno_codes(self):
        self.assertTrue(is_recoverable_network_failure(OSError(errno.EADDRNOTAVAIL, "no addr")))
        self.assertTrue(is_recoverable_network_failure(ConnectionResetError(errno.ECONNRESET, "reset")))
        self.assertFalse(is_recoverable_network_failure(OSError(errno.ECONNREFUSED, "refused")))

    def test_http_statuses(self):
        self.assertTrue(is_recoverable_network_failure(client_error(500, "InternalError")))
        self.assertTrue(is_recoverable_network_failure(client_error(522, "ConnectionTimedOut")))
        self.assertFalse(is_recoverable_network_failure(client_error(502, "BadGateway")))

    def test_chained_cause(self):
        try:
            try:
                raise ConnectionResetError(errno.ECONNRESET, "reset by peer")
            except ConnectionResetError as e:
                raise RuntimeError("request failed") from e
        except RuntimeError as wrapped:
            self.assertTrue(is_recoverable_network_failure(wrapped))


class TestRetryPolicyDecide(unittest.TestCase):
    """Test the retry decision for every error kind."""

    def test_retries_until_attempt_ceiling(self):
        for kind, make_error in RETRYABLE_ERRORS.items():
            with self.subTest(kind=kind):
                policy = RetryPolicy()
                for attempt in range(1, MAXIMUM_ATTEMPTS):
                    decision = policy.decide(make_error(), attempt)
                    self.assertTrue(decision.retry)
                with self.assertRaises(RetryExhausted) as ctx:
                    policy.decide(make_error(), MAXIMUM_ATTEMPTS)
                self.assertEqual(ctx.exception.attempts, MAXIMUM_ATTEMPTS)

    def test_not_found_is_never_retried(self):
        policy = RetryPolicy()
        for attempt in (1, 5, MAXIMUM_ATTEMPTS):
            with self.assertRaises(NotFoundError):
                policy.decide(client_error(404, "NoSuchKey"), attempt)

    def test_delay_is_constant(self):
        policy = RetryPolicy()
        delays = {policy.decide(client_error(503, "SlowDown"), attempt).delay_ms
                  for attempt in range(1, MAXIMUM_ATTEMPTS)}
        self.assertEqual(delays, {1000})
        self.assertEqual(RETRY_DELAY_MS, 1000)

    def test_fallback_decides_unknown_errors(self):
        seen = []

        def never(kind, attempt_count, max_attempts):
            seen.append((kind, attempt_count, max_attempts))
            return False

        policy = RetryPolicy(fallback=never)
        decision = policy.decide(ValueError("boom"), 3)
        self.assertFalse(decision.retry)
        self.assertEqual(seen, [(ErrorKind.UNKNOWN, 3, MAXIMUM_ATTEMPTS)])

    def test_fallback_not_consulted_for_recoverable_codes(self):
        policy = RetryPolicy(fallback=lambda kind, attempt, limit: False)
        self.assertTrue(policy.decide(ConnectionResetError(errno.ECONNRESET, "reset"), 1).retry)

    def test_custom_classifier(self):
        policy = RetryPolicy(classifier=lambda error: ErrorKind.NOT_FOUND)
        with self.assertRaises(NotFoundError):
            policy.decide(ValueError("anything"), 1)

    def test_token_attempts_increase(self):
        policy = RetryPolicy()
        token = policy.acquire_initial_retry_token()
        self.assertEqual(token, RetryToken(attempt_count=0, delay_ms=1000, cost=0))
        for expected in range(1, 4):
            token = policy.refresh_retry_token_for_retry(token, client_error(503, "SlowDown"))
            self.assertEqual(token.attempt_count, expected)
        self.assertEqual(policy.total_retry_count, 3)


class TestRetryPolicyRun(unittest.IsolatedAsyncioTestCase):
    """Test the retry executor."""

    async def test_succeeds_after_transient_failures(self):
        sleep = RecordingSleep()
        policy = RetryPolicy(sleep=sleep)
        errors = [client_error(503, "SlowDown") for _ in range(3)]
        calls = []

        async def operation(key):
            calls.append(key)
            if errors:
                raise errors.pop(0)
            return f"stored {key}"

        result = await policy.run(operation, "a")
        self.assertEqual(result, "stored a")
        self.assertEqual(len(calls), 4)
        self.assertEqual(policy.total_retry_count, 3)
        self.assertEqual(sleep.delays, [1.0, 1.0, 1.0])

    async def test_exhaustion_after_max_attempts(self):
        sleep = RecordingSleep()
        policy = RetryPolicy(sleep=sleep)
        calls = 0
        failure = client_error(500, "InternalError")

        async def operation():
            nonlocal calls
            calls += 1
            raise failure

        with self.assertRaises(RetryExhausted) as ctx:
            await policy.run(operation)
        self.assertEqual(calls, MAXIMUM_ATTEMPTS)
        self.assertEqual(policy.total_retry_count, MAXIMUM_ATTEMPTS - 1)
        self.assertEqual(len(sleep.delays), MAXIMUM_ATTEMPTS - 1)
        self.assertIs(ctx.exception.__cause__, failure)

    async def test_not_found_fails_immediately(self):
        policy = RetryPolicy(sleep=RecordingSleep())
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1
            raise client_error(404, "NoSuchKey")

        with self.assertRaises(NotFoundError):
            await policy.run(operation)
        self.assertEqual(calls, 1)
        self.assertEqual(policy.total_retry_count, 0)

    async def test_refused_retry_reraises_last_error(self):
        policy = RetryPolicy(fallback=lambda kind, attempt, limit: False, sleep=RecordingSleep())

        async def operation():
            raise ValueError("not a transport error")

        with self.assertRaises(ValueError):
            await policy.run(operation)
        self.assertEqual(policy.total_retry_count, 0)

    async def test_reset(self):
        policy = RetryPolicy(sleep=RecordingSleep())
        failures = [client_error(503, "SlowDown")]

        async def operation():
            if failures:
                raise failures.pop()
            return True

        await policy.run(operation)
        self.assertEqual(policy.total_retry_count, 1)
        policy.reset()
        self.assertEqual(policy.total_retry_count, 0)


if __name__ == '__main__':
    unittest.main()
