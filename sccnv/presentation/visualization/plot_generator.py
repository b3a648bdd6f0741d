"""
Visualization services for the quality-control step.
"""

import os
from typing import Dict, Iterable, List, Optional, Tuple

import matplotlib.patches as patches
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
import upsetplot as up
from matplotlib.colors import to_rgba

from sccnv.infrastructure.logger import Logger

OVERLAP_CATEGORIES = ["Reads", "Bhattacharyya", "Spikiness"]
OVERLAP_COLORS = ["#56B4E9", "#E69F00", "#009E73"]
FILL_ALPHA = 0.4

# Circle centres and label anchors for a three-set Venn diagram with radius 1
_VENN_CENTERS = [(-0.5, 0.35), (0.5, 0.35), (0.0, -0.45)]
_VENN_CATEGORY_POSITIONS = [(-0.9, 1.55), (0.9, 1.55), (0.0, -1.7)]
_VENN_REGION_POSITIONS = {
    (True, False, False): (-0.95, 0.6),
    (False, True, False): (0.95, 0.6),
    (False, False, True): (0.0, -1.05),
    (True, True, False): (0.0, 0.85),
    (True, False, True): (-0.6, -0.35),
    (False, True, True): (0.6, -0.35),
    (True, True, True): (0.0, 0.1),
}


def venn_region_counts(sets: List[Iterable[str]]) -> Dict[Tuple[bool, bool, bool], int]:
    """Number of elements in each of the seven regions of a three-set diagram"""
    sets = [set(values) for values in sets]
    counts = {}
    for membership in _VENN_REGION_POSITIONS:
        inside = set.intersection(*[s for s, member in zip(sets, membership) if member])
        outside = set().union(*[s for s, member in zip(sets, membership) if not member])
        counts[membership] = len(inside - outside)
    return counts


class PlotGenerator:
    """Visualization and plotting services"""

    def __init__(self, logger: Optional[Logger] = None):
        self.logger = logger if logger is not None else Logger()

    def create_overlap_diagram(
        self,
        sets: Dict[str, Iterable[str]],
        output_path: str,
        style: str = "venn",
        title: Optional[str] = None,
    ) -> None:
        """
        Draw the overlap of the QC pass sets.

        Args:
            sets: Exactly three named sets
            output_path: Image file to write (format from the extension)
            style: "venn" or "upset"
            title: Optional title
        """
        if len(sets) != 3:
            raise ValueError(f"Overlap diagram needs three sets, got {len(sets)}")

        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        if style == "venn":
            fig = self._venn3(sets, title)
        elif style == "upset":
            fig = self._upset(sets, title)
        else:
            raise ValueError(f"Unknown overlap diagram style: {style}")

        fig.savefig(output_path, dpi=300, bbox_inches="tight")
        plt.close(fig)
        self.logger.log_save(output_path)

    def _venn3(self, sets: Dict[str, Iterable[str]], title: Optional[str]):
        names = list(sets)
        counts = venn_region_counts([sets[name] for name in names])

        fig, ax = plt.subplots(figsize=(4, 4))
        for center, color in zip(_VENN_CENTERS, OVERLAP_COLORS):
            ax.add_patch(
                patches.Circle(
                    center,
                    1.0,
                    facecolor=to_rgba(color, FILL_ALPHA),
                    edgecolor=color,
                    linewidth=3,
                    linestyle="solid",
                )
            )

        for membership, (x, y) in _VENN_REGION_POSITIONS.items():
            ax.text(
                x, y, str(counts[membership]),
                ha="center", va="center", fontsize=9, fontweight="bold", family="sans-serif",
            )

        for name, (x, y) in zip(names, _VENN_CATEGORY_POSITIONS):
            ax.text(x, y, name, ha="center", va="center", fontsize=9, family="sans-serif")

        if title:
            ax.set_title(title)
        ax.set_xlim(-1.8, 1.8)
        ax.set_ylim(-1.9, 1.8)
        ax.set_aspect("equal")
        ax.axis("off")
        return fig

    def _upset(self, sets: Dict[str, Iterable[str]], title: Optional[str]):
        contents = {name: sorted(set(values)) for name, values in sets.items()}
        fig = plt.figure(figsize=(8, 5))
        if not any(contents.values()):
            self.logger.log_warning("All QC pass sets are empty; drawing an empty UpSet plot")
            fig.text(0.5, 0.5, "No cells passed any criterion", ha="center", va="center")
            return fig

        data = up.from_contents(contents)
        up.UpSet(data, subset_size="count", show_counts=True, sort_by="cardinality").plot(fig=fig)
        if title:
            fig.suptitle(title)
        return fig

    def create_metric_distributions(
        self,
        metrics: pd.DataFrame,
        thresholds: Dict[str, Optional[float]],
        output_path: str,
        title: Optional[str] = None,
    ) -> None:
        """
        Histogram of each thresholded QC metric with its cut line.

        Args:
            metrics: QC metrics table
            thresholds: Metric column to threshold (None draws no line)
            output_path: Image file to write
        """
        columns = list(thresholds)
        fig, axes = plt.subplots(1, len(columns), figsize=(5 * len(columns), 4), squeeze=False)

        for ax, column in zip(axes[0], columns):
            values = pd.to_numeric(metrics[column], errors="coerce")
            values = values[np.isfinite(values)]
            if values.empty:
                ax.text(0.5, 0.5, "no data", ha="center", va="center", transform=ax.transAxes)
            else:
                sns.histplot(x=values, ax=ax, color="#56B4E9")
            threshold = thresholds[column]
            if threshold is not None:
                ax.axvline(threshold, color="#E69F00", linestyle="--", linewidth=2)
            ax.set_xlabel(column)

        if title:
            fig.suptitle(title)
        fig.tight_layout()

        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fig.savefig(output_path, dpi=150)
        plt.close(fig)
        self.logger.log_save(output_path)
