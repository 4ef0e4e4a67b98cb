"""Azure Report Tools - command-line reporting utilities for Azure environments"""

__version__ = "1.0.0"

from .core.intervals import ClosedInterval, IntervalSet, consolidate, parse_interval

__all__ = [
    "ClosedInterval",
    "IntervalSet",
    "consolidate",
    "parse_interval",
    "__version__",
]
