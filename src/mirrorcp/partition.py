"""
Split a file list into contiguous per-worker chunks.
"""

import math
from collections.abc import Sequence
from pathlib import Path

from .models import ConfigurationError


def chunk_size_for(total_files: int, workers: int) -> int:
    """
    Number of files each worker receives.

    Rounds up so that the number of chunks never exceeds the worker count.

    Raises
    ------
    ConfigurationError
        If workers is less than 1
    """
    if workers < 1:
        raise ConfigurationError(f"Worker count must be at least 1, got {workers}")
    if total_files <= 0:
        return 0
    return math.ceil(total_files / workers)


def partition_files(files: Sequence[Path], workers: int) -> list[list[Path]]:
    """
    Partition files into at most `workers` consecutive chunks.

    Every file lands in exactly one chunk, in its original order. Chunk
    boundaries depend on position only; the last chunk may be shorter.

    Parameters
    ----------
    files : Sequence[Path]
        Files to distribute
    workers : int
        Worker count (must be >= 1)

    Returns
    -------
    list[list[Path]]
        Chunks in order; empty if there are no files

    Raises
    ------
    ConfigurationError
        If workers is less than 1
    """
    size = chunk_size_for(len(files), workers)
    if size == 0:
        return []
    return [list(files[i : i + size]) for i in range(0, len(files), size)]
