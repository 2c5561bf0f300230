"""
TFT composition meta engine.

Fingerprints final boards, aggregates per-composition statistics per
(patch, region, rank tier) and serves tiered meta snapshots.
"""

__version__ = "0.1.0"
