"""
Infrastructure package for the copy-number calling pipeline.

This package contains infrastructure components including data access, logging,
configuration parsing, the keyed artifact store and the external caller bridge.
"""
