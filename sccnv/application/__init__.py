"""
This package contains the application layer for the copy-number calling pipeline.

The application layer is responsible for orchestrating artifact derivation,
copy-number calling and quality control.
"""

from .artifact_caches import BlacklistCache, SequenceabilityCache
from .caller_invoker import CallerInvoker
from .pipeline_service import PipelineService
from .qc_service import QCService
from .samplesheet_editor import SamplesheetEditor

__all__ = [
    "BlacklistCache",
    "CallerInvoker",
    "PipelineService",
    "QCService",
    "SamplesheetEditor",
    "SequenceabilityCache",
]
