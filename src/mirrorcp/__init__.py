"""
mirrorcp: Parallel directory tree mirroring.

This package copies a source directory tree to a target location using a pool
of concurrent workers, skipping files that already exist at the destination
and reporting live progress while the transfer runs.
"""

from .engine import (
    CopyWorker,
    HashCalculator,
    ProgressAggregator,
    TransferSession,
    format_elapsed,
)
from .main import main
from .models import (
    ConfigurationError,
    CopyOutcome,
    ProgressUnit,
    ScanResult,
    TransferConfig,
    TransferSummary,
)
from .partition import partition_files
from .scanner import replicate_directories, scan_tree

__version__ = "1.0.0"
__author__ = "mirrorcp project"
__description__ = "Parallel directory tree mirroring"

__all__ = [
    "ConfigurationError",
    "CopyOutcome",
    "CopyWorker",
    "HashCalculator",
    "ProgressAggregator",
    "ProgressUnit",
    "ScanResult",
    "TransferConfig",
    "TransferSession",
    "TransferSummary",
    "format_elapsed",
    "main",
    "partition_files",
    "replicate_directories",
    "scan_tree",
]
