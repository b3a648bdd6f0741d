"""
Persistence of derived pipeline artifacts.
"""

import os
from typing import Optional

import pandas as pd

from sccnv.domain.models import ncbi_chromosome
from sccnv.infrastructure.logger import Logger

BIN_LAYOUT_COLUMNS = ["chromosome", "start", "end"]


class PipelineDataSaver:
    """Responsible for writing blacklists, bin layouts and QC tables"""

    def __init__(self, logger: Optional[Logger] = None):
        self.logger = logger if logger is not None else Logger()

    def save_blacklist(self, regions: pd.DataFrame, file_path: str) -> None:
        """
        Write blacklisted regions as a headerless, gzip-compressed BED file.

        Args:
            regions: Columns chromosome, start, end
            file_path: Output path
        """
        try:
            bed = pd.DataFrame(
                {
                    "chromosome": regions["chromosome"].map(ncbi_chromosome),
                    "start": regions["start"].astype("int64"),
                    "end": regions["end"].astype("int64"),
                }
            )
            bed.to_csv(file_path, sep="\t", header=False, index=False, compression="gzip")
        except Exception as e:
            self.logger.log_error(e, f"Saving blacklist to {file_path}")
            raise

    @staticmethod
    def read_blacklist(file_path: str) -> pd.DataFrame:
        return pd.read_csv(
            file_path,
            sep="\t",
            header=None,
            names=["chromosome", "start", "end"],
            dtype={"chromosome": str},
            compression="gzip",
        )

    def save_bin_layout(self, bins: pd.DataFrame, file_path: str) -> None:
        """Write a bin layout (0-based, half-open) as a headed TSV for the R side"""
        try:
            bins[BIN_LAYOUT_COLUMNS].to_csv(file_path, sep="\t", index=False)
        except Exception as e:
            self.logger.log_error(e, f"Saving bin layout to {file_path}")
            raise

    def save_metrics(self, metrics: pd.DataFrame, file_path: str) -> None:
        """Save a QC metrics table as TSV"""
        try:
            directory = os.path.dirname(file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            metrics.to_csv(file_path, sep="\t", index=False, na_rep="NA")
            self.logger.log_save(file_path)
        except Exception as e:
            self.logger.log_error(e, f"Saving metrics to {file_path}")
            raise
