"""
Peak performance analyzer for benchmark logs.

Merges the per-second sample lines of one or more captured benchmark logs
and prints the peak ops/s per operation.
"""

import argparse
import logging
import os
import sys

# Ensure project root is in path (for running as script)
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from analysis.log_timeseries import LogTimeSeriesReconstructor, format_peak_performance

logger = logging.getLogger(__name__)


class PeakPerformanceAnalyzer:
    """Reads log files, reconstructs the time series and reports peaks."""

    def __init__(self, log_files):
        self.log_files = list(log_files)
        self.reconstructor = LogTimeSeriesReconstructor()

    def analyze(self):
        for path in self.log_files:
            self.reconstructor.add_file(path)
        self.reconstructor.fill_gaps()
        peaks = self.reconstructor.peak_performance()
        logger.info(f"Analyzed {self.reconstructor.sources} log files")
        return peaks

    def export_csv(self, path: str) -> str:
        frame = self.reconstructor.to_frame()
        frame.to_csv(path, index=False)
        logger.info(f"Saved {len(frame)} points to {path}")
        return path


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Peak ops/s per operation from benchmark logs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Merge the logs of three benchmark hosts
  objbench-peak host1.log host2.log host3.log

  # Also keep the reconstructed series
  objbench-peak host1.log host2.log --csv series.csv
        """,
    )
    parser.add_argument("log_files", nargs="+", help="Benchmark log files")
    parser.add_argument("--csv", default=None, help="Write the reconstructed series to this CSV file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv=None):
    """Main entry point for the log analyzer."""
    args = create_parser().parse_args(argv)

    if not logging.root.handlers:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s - %(levelname)s - %(message)s",
        )

    analyzer = PeakPerformanceAnalyzer(args.log_files)
    try:
        peaks = analyzer.analyze()
        if args.csv:
            analyzer.export_csv(args.csv)
    except OSError as e:
        logger.error(f"Failed to read logs: {e}")
        sys.exit(1)

    print(format_peak_performance(peaks))


if __name__ == "__main__":
    main()
