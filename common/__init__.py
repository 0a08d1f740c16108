"""
Common utilities for the object storage benchmark.
"""

from .endpoint_pool import EndpointPool
from .live_sampler import LiveSampler
from .phase_manager import PhaseManager, BenchmarkState
from .worker_pool import WorkerPool

__all__ = ['EndpointPool', 'LiveSampler', 'PhaseManager', 'BenchmarkState', 'WorkerPool']
