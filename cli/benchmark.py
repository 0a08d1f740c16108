"""
Object storage benchmark: write, read, stat and remove N objects with T workers.
"""

import argparse
import logging
import os
import sys
from typing import Callable, Dict, Optional

import uvloop

# Ensure project root is in path (for running as script)
# When run as module (python -m cli.benchmark), this is not needed
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from configuration import (
    S3_USE_SSL,
    S3_HOSTNAME,
    S3_PORT,
    S3_ACCESS_KEY,
    S3_SECRET_KEY,
    S3_BUCKET,
    OBJECT_MIN_SIZE_BYTES,
    OBJECT_MAX_SIZE_BYTES,
    SAMPLE_INTERVAL_SECONDS,
    DEFAULT_OUTPUT_PREFIX,
    parse_bucket_list,
)
from algorithms import WriteOperation, ReadOperation, StatOperation, RemoveOperation
from common.endpoint_pool import EndpointPool
from common.live_sampler import LiveSampler
from common.metrics_utils import format_scheduling_line, print_line
from common.phase_manager import PhaseManager
from common.storage_factory import create_endpoint_pool
from common.worker_pool import WorkerPool, PhaseOperation
from persistence.parquet import ParquetPersistence
from persistence.record import OperationKind, PhaseSummary
from persistence.registry import ObjectRegistry
from systems.errors import BenchmarkError

logger = logging.getLogger(__name__)


class BenchmarkRunner:
    """Runs the Write, Read, Stat and Remove phases back to back.

    Every phase waits for all workers of the previous one; the first
    unrecovered error aborts the run.
    """

    def __init__(
        self,
        object_count: int,
        threads: int,
        endpoint_pool: EndpointPool,
        registry: Optional[ObjectRegistry] = None,
        persistence: Optional[ParquetPersistence] = None,
        min_size: int = OBJECT_MIN_SIZE_BYTES,
        max_size: int = OBJECT_MAX_SIZE_BYTES,
        sample_interval: float = SAMPLE_INTERVAL_SECONDS,
        emit: Callable[[str], None] = print_line,
    ):
        if object_count < 0:
            raise ValueError(f"Object count must not be negative, got {object_count}")
        self.object_count = object_count
        self.threads = threads
        self.endpoint_pool = endpoint_pool
        self.registry = registry if registry is not None else ObjectRegistry()
        self.persistence = persistence
        self.sample_interval = sample_interval
        self.emit = emit

        self.phase_manager = PhaseManager()
        self.worker_pool = WorkerPool(threads)
        self.phases = [
            WriteOperation(endpoint_pool, self.registry, min_size=min_size, max_size=max_size),
            ReadOperation(self.registry),
            StatOperation(self.registry),
            RemoveOperation(self.registry),
        ]

        logger.info(
            f"Initialized benchmark runner: {object_count} objects, {threads} workers, "
            f"{len(endpoint_pool)} endpoints"
        )

    async def run_phase(self, kind: OperationKind, operation: PhaseOperation) -> PhaseSummary:
        """Run one phase to completion and return its summary."""
        self.phase_manager.begin_phase(kind)
        self.emit(format_scheduling_line(
            kind, self.object_count, self.threads, len(self.endpoint_pool)
        ))

        sampler = LiveSampler(
            kind, self.worker_pool, self.endpoint_pool,
            interval=self.sample_interval, emit=self.emit,
        )
        sampler.start()
        try:
            total_bytes = await self.worker_pool.run(operation, self.object_count)
            if kind is OperationKind.WRITE and not self.registry.is_complete(self.object_count):
                raise BenchmarkError(
                    f"Write phase registered {len(self.registry)} of {self.object_count} objects"
                )
        except BaseException as e:
            await sampler.stop()
            self.phase_manager.fail(e)
            raise

        summary = await sampler.finish(total_bytes)
        self.phase_manager.complete_phase(kind)

        if self.persistence is not None:
            self.persistence.store_samples(sampler.samples)
            self.persistence.store_summary(summary)
        return summary

    async def run_benchmark(self) -> Dict[OperationKind, PhaseSummary]:
        """Execute all four phases in order."""
        logger.info("Starting benchmark")
        results = {}
        for operation in self.phases:
            results[operation.kind] = await self.run_phase(operation.kind, operation)
        logger.info("Benchmark completed")
        return results


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Object storage peak throughput benchmark",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 10000 objects with 64 workers against two buckets
  S3_HOSTNAME=minio.local S3_BUCKET=bench-a,bench-b objbench 10000 64

  # Keep per-second samples for later analysis
  objbench 10000 64 --output-dir results
        """,
    )
    parser.add_argument("object_count", type=_positive_int, help="Number of objects")
    parser.add_argument("thread_count", type=_positive_int, help="Number of concurrent workers")
    parser.add_argument("--use-ssl", action=argparse.BooleanOptionalAction, default=S3_USE_SSL,
                        help="Connect over TLS (default from S3_USE_SSL)")
    parser.add_argument("--hostname", default=S3_HOSTNAME,
                        help="Backend hostname (default from S3_HOSTNAME)")
    parser.add_argument("--port", type=int, default=S3_PORT,
                        help=f"Backend port (default: {S3_PORT})")
    parser.add_argument("--access-key", default=S3_ACCESS_KEY,
                        help="Access key id (default from S3_ACCESS_KEY)")
    parser.add_argument("--secret-key", default=S3_SECRET_KEY,
                        help="Secret access key (default from S3_SECRET_KEY)")
    parser.add_argument("--buckets", default=S3_BUCKET,
                        help="Comma separated bucket names, one endpoint each (default from S3_BUCKET)")
    parser.add_argument("--min-size", type=int, default=OBJECT_MIN_SIZE_BYTES,
                        help=f"Minimum payload size in bytes (default: {OBJECT_MIN_SIZE_BYTES})")
    parser.add_argument("--max-size", type=int, default=OBJECT_MAX_SIZE_BYTES,
                        help=f"Maximum payload size in bytes (default: {OBJECT_MAX_SIZE_BYTES})")
    parser.add_argument("--output-dir", default=None,
                        help="Save samples and summaries as Parquet files in this directory")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


async def main_async(args: argparse.Namespace) -> Dict[OperationKind, PhaseSummary]:
    endpoint_pool = create_endpoint_pool(
        buckets=parse_bucket_list(args.buckets),
        hostname=args.hostname,
        port=args.port,
        use_ssl=args.use_ssl,
        access_key=args.access_key,
        secret_key=args.secret_key,
    )
    persistence = ParquetPersistence(args.output_dir) if args.output_dir else None

    runner = BenchmarkRunner(
        object_count=args.object_count,
        threads=args.thread_count,
        endpoint_pool=endpoint_pool,
        persistence=persistence,
        min_size=args.min_size,
        max_size=args.max_size,
    )

    async with endpoint_pool:
        results = await runner.run_benchmark()

    if persistence is not None:
        paths = persistence.save_to_file(DEFAULT_OUTPUT_PREFIX)
        if paths:
            logger.info(f"Detailed results saved to: {paths['samples']}")
    return results


def main(argv=None):
    """Main entry point for the benchmark runner."""
    args = create_parser().parse_args(argv)

    if not logging.root.handlers:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.INFO,
            format="%(asctime)s - %(levelname)s - %(message)s",
        )

    try:
        uvloop.run(main_async(args))
    except KeyboardInterrupt:
        logger.info("Benchmark interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Benchmark failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
