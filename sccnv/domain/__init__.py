"""
This package contains the domain layer for the copy-number calling pipeline.

The domain layer holds the data model and the decision logic of the pipeline.
"""

from .models import (
    CallerRequest,
    GenomeConfig,
    PipelineConfig,
    QCConfig,
    QCResult,
    QualityInfo,
)
from .samplesheet import Samplesheet

__all__ = [
    "CallerRequest",
    "GenomeConfig",
    "PipelineConfig",
    "QCConfig",
    "QCResult",
    "QualityInfo",
    "Samplesheet",
]
