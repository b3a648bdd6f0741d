"""
Multi-criterion quality-control filter for copy-number called cells.
"""

from typing import Iterable, Optional

import numpy as np
import pandas as pd

from sccnv.domain.models import QCResult
from sccnv.infrastructure.logger import Logger


class QCFilter:
    """Decides which cells of a donor are excluded from downstream results.

    A cell is included only when it passes all three criteria:

    * read depth: ``total_read_count > min_read_count``
    * Bhattacharyya distance: strictly above the threshold
    * spikiness: strictly below the threshold

    Missing thresholds are derived from the donor's own distribution: the
    boundary of the worst ``percentile_fraction`` of cells, taken from the
    bottom for Bhattacharyya and from the top for spikiness. Missing metric
    values never pass a criterion.
    """

    def __init__(
        self,
        min_read_count: float = 200000,
        percentile_fraction: float = 0.10,
        logger: Optional[Logger] = None,
    ):
        if not 0.0 < percentile_fraction <= 1.0:
            raise ValueError(f"Percentile fraction must be in (0, 1], got {percentile_fraction}")
        self.min_read_count = min_read_count
        self.percentile_fraction = percentile_fraction
        self.logger = logger if logger is not None else Logger()

    def threshold_rank(self, ncells: int) -> int:
        """Rank of the threshold value; at least 1 for small cohorts"""
        # Divide rather than multiply so that e.g. 25 cells gives exactly 2.5
        return max(1, round(ncells / (1.0 / self.percentile_fraction)))

    @staticmethod
    def _finite_sorted(values: Iterable[float]) -> np.ndarray:
        values = np.asarray(list(values), dtype=float)
        return np.sort(values[np.isfinite(values)])

    def lower_threshold(self, values: Iterable[float], ncells: int) -> Optional[float]:
        """Value at rank ``threshold_rank(ncells)`` counted from the bottom"""
        ordered = self._finite_sorted(values)
        if ordered.size == 0:
            return None
        rank = min(self.threshold_rank(ncells), ordered.size)
        return float(ordered[rank - 1])

    def upper_threshold(self, values: Iterable[float], ncells: int) -> Optional[float]:
        """Value at rank ``threshold_rank(ncells)`` counted from the top"""
        ordered = self._finite_sorted(values)
        if ordered.size == 0:
            return None
        rank = min(self.threshold_rank(ncells), ordered.size)
        return float(ordered[-rank])

    @staticmethod
    def _names_where(metrics: pd.DataFrame, mask: pd.Series) -> frozenset:
        return frozenset(metrics.loc[mask.fillna(False).astype(bool), "name"])

    def apply(
        self,
        metrics: pd.DataFrame,
        donor: str,
        bhattacharyya_threshold: Optional[float] = None,
        spikiness_threshold: Optional[float] = None,
    ) -> QCResult:
        """
        Apply the three QC criteria to a donor's metrics table.

        Args:
            metrics: Metrics table with columns name, total_read_count,
                bhattacharyya, spikiness
            donor: Donor the metrics belong to
            bhattacharyya_threshold: Fixed threshold, derived when None
            spikiness_threshold: Fixed threshold, derived when None

        Returns:
            QCResult: Pass sets, thresholds and the included/excluded cells
        """
        ncells = len(metrics)
        if ncells != metrics["name"].nunique():
            raise ValueError(f"Metrics table for donor '{donor}' has duplicate sample names")

        if bhattacharyya_threshold is None:
            bhattacharyya_threshold = self.lower_threshold(metrics["bhattacharyya"], ncells)
        if spikiness_threshold is None:
            spikiness_threshold = self.upper_threshold(metrics["spikiness"], ncells)

        self.logger.log_threshold(f"{donor} Bhattacharyya threshold", bhattacharyya_threshold)
        self.logger.log_threshold(f"{donor} spikiness threshold", spikiness_threshold)

        passed_read_count = self._names_where(
            metrics, metrics["total_read_count"] > self.min_read_count
        )

        if bhattacharyya_threshold is None:
            passed_bhattacharyya = frozenset()
        else:
            passed_bhattacharyya = self._names_where(
                metrics, metrics["bhattacharyya"] > bhattacharyya_threshold
            )

        if spikiness_threshold is None:
            passed_spikiness = frozenset()
        else:
            passed_spikiness = self._names_where(
                metrics, metrics["spikiness"] < spikiness_threshold
            )

        all_cells = frozenset(metrics["name"])
        included = passed_read_count & passed_bhattacharyya & passed_spikiness
        excluded = all_cells - included

        self.logger.log_step(
            "QC filter",
            f"{donor}: {len(included)} included, {len(excluded)} excluded of {ncells} cells",
        )

        return QCResult(
            donor=donor,
            metrics=metrics,
            bhattacharyya_threshold=bhattacharyya_threshold,
            spikiness_threshold=spikiness_threshold,
            passed_read_count=passed_read_count,
            passed_bhattacharyya=passed_bhattacharyya,
            passed_spikiness=passed_spikiness,
            included=included,
            excluded=excluded,
        )
