"""
Benchmark data structures, object registry and result persistence.
"""
