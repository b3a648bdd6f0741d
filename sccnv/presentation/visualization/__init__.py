"""
Visualization package for the copy-number calling pipeline.
"""

from .plot_generator import PlotGenerator

__all__ = ["PlotGenerator"]
