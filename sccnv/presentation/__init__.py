"""
Presentation package for the copy-number calling pipeline.
"""
