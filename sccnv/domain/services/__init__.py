"""
Business logic services package for the copy-number calling pipeline.
"""

from .coverage_aggregator import CoverageAggregator
from .outlier_detector import OutlierRegionDetector
from .qc_filter import QCFilter

__all__ = [
    "CoverageAggregator",
    "OutlierRegionDetector",
    "QCFilter",
]
