"""
Offline analysis of benchmark logs.
"""

from .log_timeseries import LogTimeSeriesReconstructor, summarize_peak_performance

__all__ = ['LogTimeSeriesReconstructor', 'summarize_peak_performance']
