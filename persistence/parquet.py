"""
Parquet persistence for live samples and phase summaries.
"""

import os
import logging
from typing import Dict, List, Optional
from datetime import datetime

import pandas as pd

from configuration import DEFAULT_OUTPUT_PREFIX
from persistence.record import PhaseSummary, Sample

logger = logging.getLogger(__name__)


class ParquetPersistence:
    """In-memory store of benchmark samples with Parquet export.

    Attributes:
        output_dir: Directory where Parquet files will be saved
        samples: Live samples accumulated during the run
        summaries: One summary per completed phase
    """

    def __init__(self, output_dir: str):
        """Initialize Parquet persistence.

        Args:
            output_dir: Directory for saving Parquet files, created if missing
        """
        self.output_dir: str = output_dir
        self.samples: List[Sample] = []
        self.summaries: List[PhaseSummary] = []

        os.makedirs(output_dir, exist_ok=True)

    def store_samples(self, samples: List[Sample]) -> None:
        self.samples.extend(samples)

    def store_summary(self, summary: PhaseSummary) -> None:
        self.summaries.append(summary)

    def samples_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [{
                'timestamp': sample.timestamp,
                'operation': sample.operation.value,
                'ops_per_sec': sample.ops_per_sec,
                'throughput_bytes_per_sec': sample.throughput_bytes_per_sec,
            } for sample in self.samples],
            columns=['timestamp', 'operation', 'ops_per_sec', 'throughput_bytes_per_sec'],
        )

    def summaries_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [{
                'operation': summary.operation.value,
                'elapsed_ms': summary.elapsed_ms,
                'peak_ops_per_sec': summary.peak_ops_per_sec,
                'avg_ops_per_sec': summary.avg_ops_per_sec,
                'total_bytes': summary.total_bytes,
                'total_count': summary.total_count,
                'recoverable_error_count': summary.recoverable_error_count,
            } for summary in self.summaries],
            columns=['operation', 'elapsed_ms', 'peak_ops_per_sec', 'avg_ops_per_sec',
                     'total_bytes', 'total_count', 'recoverable_error_count'],
        )

    def save_to_file(self, filename_prefix: str = DEFAULT_OUTPUT_PREFIX) -> Optional[Dict[str, str]]:
        """Save samples and summaries to two Parquet files.

        Args:
            filename_prefix: Prefix for the generated filenames

        Returns:
            Mapping of 'samples'/'summaries' to written paths, or None if nothing was stored
        """
        if not self.samples and not self.summaries:
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        paths = {
            'samples': os.path.join(self.output_dir, f"{filename_prefix}_samples_{timestamp}.parquet"),
            'summaries': os.path.join(self.output_dir, f"{filename_prefix}_summaries_{timestamp}.parquet"),
        }

        logger.info(f"Saving {len(self.samples)} samples and {len(self.summaries)} summaries")
        self.samples_frame().to_parquet(paths['samples'], index=False)
        self.summaries_frame().to_parquet(paths['summaries'], index=False)
        logger.info(f"Saved results to {paths['samples']} and {paths['summaries']}")
        return paths
