"""CLI command modules."""

from .consensus import consensus
from .daemon import daemon
from .report import report

__all__ = [
    "consensus",
    "daemon",
    "report",
]
