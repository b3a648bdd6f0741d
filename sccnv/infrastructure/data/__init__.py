"""
Data access package for the copy-number calling pipeline.

This package contains loading and saving components for samplesheets, per-cell
caller results and the derived correction artifacts.
"""

from .data_saver import PipelineDataSaver
from .result_reader import CellResultReader
from .samplesheet_loader import SamplesheetLoader

__all__ = ["CellResultReader", "PipelineDataSaver", "SamplesheetLoader"]
