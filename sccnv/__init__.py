"""
Single-cell copy-number calling pipeline.

Coordinates blacklist and sequenceability-factor derivation, per-donor
copy-number calling, and quality-control filtering of the resulting cells.
"""

__version__ = "0.1.0"
