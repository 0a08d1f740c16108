"""
Command line entry points: the benchmark runner and the log analyzer.
"""
