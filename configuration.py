"""
Configuration constants for the object storage peak benchmark.

This module contains all configuration parameters including:
- S3 endpoint, credentials and bucket list
- Retry policy and connection timeouts
- Test parameters (object sizes, key layout, sampling interval)
- Size constants and conversion factors
"""

import os
from typing import List

from dotenv import load_dotenv

# Pick up S3_* settings from a local .env file when present
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in ("", "0", "false", "no", "off")


# =============================================================================
# OBJECT STORAGE CONFIGURATION
# =============================================================================

S3_USE_SSL: bool = _env_flag("S3_USE_SSL", "1")
S3_HOSTNAME: str = os.getenv("S3_HOSTNAME", "")
S3_PORT: int = int(os.getenv("S3_PORT", "443"))
S3_ACCESS_KEY: str = os.getenv("S3_ACCESS_KEY", "")
S3_SECRET_KEY: str = os.getenv("S3_SECRET_KEY", "")
S3_REGION: str = "auto"

# Comma separated; every bucket becomes one endpoint of the pool
S3_BUCKET: str = os.getenv("S3_BUCKET", "")

# =============================================================================
# RETRY POLICY AND TIMEOUTS
# =============================================================================

MAXIMUM_ATTEMPTS: int = 20  # Attempt ceiling per logical request
RETRY_DELAY_MS: int = 1000  # Constant delay between attempts

# Short timeouts so a stalled request fails into the retry path
CONNECT_TIMEOUT_SECONDS: int = 5
READ_TIMEOUT_SECONDS: int = 3

MAX_POOL_CONNECTIONS: int = 1000

# HTTP statuses retried even when the error class says otherwise
RECOVERABLE_HTTP_STATUSES = (500, 522)

# =============================================================================
# TEST PARAMETERS
# =============================================================================

OBJECT_MIN_SIZE_BYTES: int = 4096 * 4
OBJECT_MAX_SIZE_BYTES: int = 4096 * 4
OBJECT_KEY_PREFIX: str = "benchmark/"
OBJECT_KEY_SUFFIX: str = ".png"
OBJECT_CONTENT_TYPE: str = "application/octet-stream"

SAMPLE_INTERVAL_SECONDS: float = 1.0

# =============================================================================
# SIZE CONSTANTS
# =============================================================================

BYTES_PER_MB: int = 1024 * 1024
MS_PER_SECOND: int = 1000

# =============================================================================
# CLI DEFAULTS
# =============================================================================

DEFAULT_OUTPUT_PREFIX: str = "benchmark"


def parse_bucket_list(value: str) -> List[str]:
    """Split a comma separated bucket list, dropping empty entries."""
    return [bucket.strip() for bucket in (value or "").split(",") if bucket.strip()]


def build_endpoint_url(hostname: str, port: int, use_ssl: bool) -> str:
    """Build the endpoint URL the S3 client connects to."""
    scheme = "https" if use_ssl else "http"
    return f"{scheme}://{hostname}:{port}"
