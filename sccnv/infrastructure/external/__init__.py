"""
Bridges to external tools used by the pipeline.
"""

from .aneufinder_caller import AneufinderCaller

__all__ = ["AneufinderCaller"]
