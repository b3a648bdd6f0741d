"""
Detection of bins with extreme aggregate coverage.
"""

from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from sccnv.domain.models import ncbi_chromosome
from sccnv.infrastructure.logger import Logger

REGION_COLUMNS = ["chromosome", "start", "end"]


class OutlierRegionDetector:
    """Flags bins whose total coverage falls outside percentile bands"""

    def __init__(
        self,
        autosome_quantiles: Tuple[float, float] = (0.05, 0.95),
        allosome_quantiles: Tuple[float, float] = (0.05, 0.95),
        logger: Optional[Logger] = None,
    ):
        for low, high in (autosome_quantiles, allosome_quantiles):
            if not 0.0 <= low < high <= 1.0:
                raise ValueError(f"Invalid quantile band: ({low}, {high})")
        self.autosome_quantiles = autosome_quantiles
        self.allosome_quantiles = allosome_quantiles
        self.logger = logger if logger is not None else Logger()

    @staticmethod
    def cut_lines(counts: np.ndarray, quantiles: Tuple[float, float]) -> Tuple[float, float]:
        """Low and high cut lines over ``counts`` (linear interpolation)"""
        low, high = np.quantile(counts, quantiles)
        return float(low), float(high)

    def _flag_group(
        self, totals: pd.DataFrame, chromosomes: Sequence[str], quantiles: Tuple[float, float], label: str
    ) -> pd.Series:
        names = totals["chromosome"].map(ncbi_chromosome)
        in_group = names.isin([ncbi_chromosome(c) for c in chromosomes])
        flags = pd.Series(False, index=totals.index)
        if not in_group.any():
            return flags

        counts = totals.loc[in_group, "counts"].to_numpy(dtype=float)
        low, high = self.cut_lines(counts, quantiles)
        self.logger.log_threshold(f"{label} low cut line", low)
        self.logger.log_threshold(f"{label} high cut line", high)

        group_counts = totals["counts"].astype(float)
        flags[in_group & ((group_counts < low) | (group_counts > high))] = True
        return flags

    def detect(
        self, totals: pd.DataFrame, autosomes: Sequence[str], allosomes: Sequence[str]
    ) -> pd.DataFrame:
        """
        Select outlier bins.

        Cut lines are computed separately over the autosomal and allosomal bins.

        Args:
            totals: Aggregated counts with columns chromosome, start, end, counts
            autosomes: Autosomal chromosome names
            allosomes: Allosomal chromosome names

        Returns:
            pd.DataFrame: The flagged bins, in input order
        """
        if totals.empty:
            self.logger.log_warning("No coverage to derive outlier regions from")
            return pd.DataFrame(columns=REGION_COLUMNS + ["counts"])

        flags = self._flag_group(totals, autosomes, self.autosome_quantiles, "Autosomal")
        flags |= self._flag_group(totals, allosomes, self.allosome_quantiles, "Allosomal")

        outliers = totals[flags].reset_index(drop=True)
        self.logger.log_step("Outlier detection", f"{len(outliers)} of {len(totals)} bins flagged")
        return outliers

    @staticmethod
    def merge_regions(bins: pd.DataFrame) -> pd.DataFrame:
        """Merge touching or overlapping bins on the same chromosome"""
        if bins.empty:
            return pd.DataFrame(columns=REGION_COLUMNS)

        merged = []
        for chrom, chrom_bins in bins.groupby("chromosome", sort=False):
            chrom_bins = chrom_bins.sort_values("start")
            current_start, current_end = None, None
            for start, end in zip(chrom_bins["start"], chrom_bins["end"]):
                if current_end is not None and start <= current_end:
                    current_end = max(current_end, end)
                    continue
                if current_end is not None:
                    merged.append((chrom, current_start, current_end))
                current_start, current_end = start, end
            merged.append((chrom, current_start, current_end))

        return pd.DataFrame(merged, columns=REGION_COLUMNS)
