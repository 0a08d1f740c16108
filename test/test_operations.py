"""
Tests for the Write, Read, Stat and Remove phase operations.
"""

import hashlib
import os
import random
import re
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from algorithms import (
    ReadOperation,
    RemoveOperation,
    StatOperation,
    WriteOperation,
    generate_object_key,
)
from common.endpoint_pool import EndpointPool
from persistence.record import ObjectRecord, OperationKind
from persistence.registry import ObjectRegistry
from systems.errors import IntegrityMismatch, NotFoundError
from fakes import InMemoryStorage, client_error


KEY_PATTERN = re.compile(r"^benchmark/[0-9a-f]{32}\.png$")


def seed_object(storage, registry, sequence_id, data=b"0123456789"):
    key = f"benchmark/{sequence_id:032x}.png"
    storage.objects[key] = data
    record = ObjectRecord(
        sequence_id=sequence_id,
        key=key,
        etag=hashlib.md5(data).hexdigest(),
        size=len(data),
        endpoint=storage,
    )
    registry.add(record)
    return record


class TestWriteOperation(unittest.IsolatedAsyncioTestCase):

    def test_key_format(self):
        keys = {generate_object_key() for _ in range(50)}
        self.assertEqual(len(keys), 50)
        for key in keys:
            self.assertRegex(key, KEY_PATTERN)

    def test_rejects_bad_size_range(self):
        pool = EndpointPool([InMemoryStorage()])
        with self.assertRaises(ValueError):
            WriteOperation(pool, ObjectRegistry(), min_size=10, max_size=5)

    async def test_write_registers_object(self):
        storage = InMemoryStorage()
        registry = ObjectRegistry()
        write = WriteOperation(EndpointPool([storage]), registry, min_size=64, max_size=64,
                               rng=random.Random(7))

        size = await write(0, 5)

        self.assertEqual(size, 64)
        record = registry.get(5)
        self.assertRegex(record.key, KEY_PATTERN)
        self.assertEqual(record.size, 64)
        self.assertIs(record.endpoint, storage)
        self.assertEqual(record.etag, hashlib.md5(storage.objects[record.key]).hexdigest())

    async def test_payload_size_within_range(self):
        write = WriteOperation(EndpointPool([InMemoryStorage()]), ObjectRegistry(),
                               min_size=10, max_size=20, rng=random.Random(1))
        for _ in range(30):
            self.assertTrue(10 <= len(write.generate_payload()) <= 20)

    async def test_worker_uses_its_own_endpoint(self):
        first, second = InMemoryStorage("a"), InMemoryStorage("b")
        registry = ObjectRegistry()
        write = WriteOperation(EndpointPool([first, second]), registry, min_size=8, max_size=8)

        await write(0, 0)
        await write(1, 1)
        await write(2, 2)

        self.assertIs(registry.get(0).endpoint, first)
        self.assertIs(registry.get(1).endpoint, second)
        self.assertIs(registry.get(2).endpoint, first)
        self.assertEqual(len(first.objects), 2)
        self.assertEqual(len(second.objects), 1)


class TestReadOperation(unittest.IsolatedAsyncioTestCase):

    async def test_read_verifies_object(self):
        storage = InMemoryStorage()
        registry = ObjectRegistry()
        record = seed_object(storage, registry, 0)

        size = await ReadOperation(registry)(0, 0)

        self.assertEqual(size, record.size)
        self.assertEqual(storage.events, [("get", record.key)])

    async def test_truncated_body_is_integrity_failure(self):
        storage = InMemoryStorage(truncate_reads=True)
        registry = ObjectRegistry()
        record = seed_object(storage, registry, 0)

        with self.assertRaises(IntegrityMismatch) as ctx:
            await ReadOperation(registry)(0, 0)

        self.assertEqual(ctx.exception.key, record.key)
        self.assertEqual(ctx.exception.actual_size, record.size - 1)
        self.assertIn(f"Check failed for {record.key}", str(ctx.exception))
        # The integrity check is never retried
        self.assertEqual(storage.events, [("get", record.key)])
        self.assertEqual(storage.retry_policy.total_retry_count, 0)

    async def test_etag_mismatch_is_integrity_failure(self):
        storage = InMemoryStorage(bad_etag=True)
        registry = ObjectRegistry()
        seed_object(storage, registry, 0)

        with self.assertRaises(IntegrityMismatch):
            await ReadOperation(registry)(0, 0)

    async def test_outer_loop_retries_any_error(self):
        storage = InMemoryStorage()
        registry = ObjectRegistry()
        record = seed_object(storage, registry, 0)
        # ValueError is refused by the endpoint policy after the first attempt
        storage.retry_policy.fallback = lambda kind, attempt, limit: False
        storage.fail_next(ValueError("stream broke"), ValueError("stream broke"))

        size = await ReadOperation(registry)(0, 0)

        self.assertEqual(size, record.size)
        self.assertEqual(storage.retry_policy.total_retry_count, 2)
        self.assertEqual(storage.sleep.delays, [])

    async def test_outer_loop_reraises_last_error(self):
        storage = InMemoryStorage()
        registry = ObjectRegistry()
        seed_object(storage, registry, 0)
        storage.retry_policy.fallback = lambda kind, attempt, limit: False
        errors = [ValueError(f"failure {i}") for i in range(3)]
        storage.fail_next(*errors)

        with self.assertRaises(ValueError) as ctx:
            await ReadOperation(registry, max_attempts=3)(0, 0)

        self.assertIs(ctx.exception, errors[-1])
        self.assertEqual(storage.retry_policy.total_retry_count, 3)

    async def test_endpoint_retries_count_too(self):
        storage = InMemoryStorage()
        registry = ObjectRegistry()
        seed_object(storage, registry, 0)
        storage.fail_next(client_error(503, "SlowDown"))

        await ReadOperation(registry)(0, 0)

        self.assertEqual(storage.retry_policy.total_retry_count, 1)
        self.assertEqual(storage.sleep.delays, [1.0])

    async def test_reads_from_the_bucket_holding_the_object(self):
        first, second = InMemoryStorage("a"), InMemoryStorage("b")
        registry = ObjectRegistry()
        seed_object(second, registry, 0)

        await ReadOperation(registry)(0, 0)

        self.assertEqual(first.events, [])
        self.assertEqual(len(second.events), 1)


class TestStatOperation(unittest.IsolatedAsyncioTestCase):

    async def test_stat_verifies_metadata(self):
        storage = InMemoryStorage()
        registry = ObjectRegistry()
        record = seed_object(storage, registry, 3)

        size = await StatOperation(registry)(0, 3)

        self.assertEqual(size, record.size)
        self.assertEqual(storage.events, [("head", record.key)])

    async def test_stat_mismatch(self):
        storage = InMemoryStorage(bad_etag=True)
        registry = ObjectRegistry()
        record = seed_object(storage, registry, 0)

        with self.assertRaises(IntegrityMismatch) as ctx:
            await StatOperation(registry)(0, 0)
        self.assertEqual(ctx.exception.expected_etag, record.etag)
        self.assertEqual(ctx.exception.actual_etag, "0" * 32)

    async def test_stat_missing_object(self):
        storage = InMemoryStorage()
        registry = ObjectRegistry()
        record = seed_object(storage, registry, 0)
        del storage.objects[record.key]

        with self.assertRaises(NotFoundError):
            await StatOperation(registry)(0, 0)


class TestRemoveOperation(unittest.IsolatedAsyncioTestCase):

    async def test_remove_deletes_object(self):
        storage = InMemoryStorage()
        registry = ObjectRegistry()
        record = seed_object(storage, registry, 0)

        size = await RemoveOperation(registry)(0, 0)

        self.assertEqual(size, record.size)
        self.assertNotIn(record.key, storage.objects)

    def test_kinds(self):
        registry = ObjectRegistry()
        self.assertIs(ReadOperation.kind, OperationKind.READ)
        self.assertIs(StatOperation(registry).kind, OperationKind.STAT)
        self.assertIs(RemoveOperation(registry).kind, OperationKind.REMOVE)
        self.assertIs(WriteOperation.kind, OperationKind.WRITE)


if __name__ == '__main__':
    unittest.main()
