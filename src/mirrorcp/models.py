"""
Data models shared by the mirrorcp copy engine.
"""

import argparse
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# Constants
BUFFER_SIZE = 8 * 1024 * 1024  # 8MB
HASH_ALGORITHMS = ["xxh64be", "md5", "sha1", "sha256"]


class ConfigurationError(ValueError):
    """Fatal configuration problem detected before any work begins."""


class CopyOutcome(Enum):
    """
    Terminal outcome of a single file transfer.

    Attributes
    ----------
    COPIED : str
        File contents were written to the destination
    SKIPPED : str
        Destination already existed and was left untouched
    FAILED : str
        Copy was attempted and did not complete
    """

    COPIED = "copied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ProgressUnit:
    """
    Message sent by a worker to the aggregator once per processed file.

    Attributes
    ----------
    outcome : CopyOutcome
        How the file was resolved
    source : Path
        Source file the unit refers to
    bytes_written : int, default=0
        Bytes written to the destination (0 unless copied)
    error : str | None, default=None
        Failure reason when outcome is FAILED
    """

    outcome: CopyOutcome
    source: Path
    bytes_written: int = 0
    error: str | None = None


@dataclass
class ScanResult:
    """Directories and files discovered beneath a source root."""

    directories: list[Path] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)
    total_bytes: int = 0

    @property
    def total_files(self) -> int:
        return len(self.files)


@dataclass
class TransferConfig:
    """
    Configuration for a single transfer session.

    Parameters
    ----------
    source : Path
        Source root directory
    target : Path
        Target root directory
    workers : int
        Number of concurrent copy workers
    buffer_size : int, default=BUFFER_SIZE
        Block size used when copying file contents
    verify : bool, default=False
        Re-hash each copied file and compare against the in-flight source hash
    hash_algorithm : str, default="xxh64be"
        Algorithm used when verify is enabled
    show_progress : bool, default=True
        Render a live progress bar
    """

    source: Path
    target: Path
    workers: int
    buffer_size: int = BUFFER_SIZE
    verify: bool = False
    hash_algorithm: str = "xxh64be"
    show_progress: bool = True

    def __post_init__(self):
        """Validate configuration."""
        self.source = Path(self.source)
        self.target = Path(self.target)

        if self.workers < 1:
            raise ConfigurationError(
                f"Worker count must be at least 1, got {self.workers}"
            )
        if self.buffer_size <= 0:
            raise ConfigurationError(
                f"Buffer size must be positive, got {self.buffer_size}"
            )
        if self.hash_algorithm.lower() not in HASH_ALGORITHMS:
            raise ConfigurationError(f"Invalid hash algorithm: {self.hash_algorithm}")
        self.hash_algorithm = self.hash_algorithm.lower()

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "TransferConfig":
        """Create config from command-line arguments."""
        return cls(
            source=args.source,
            target=args.target,
            workers=args.workers,
            buffer_size=args.buffer_size,
            verify=args.verify,
            hash_algorithm=args.hash if args.hash else "xxh64be",
            show_progress=not args.no_progress,
        )


@dataclass
class TransferSummary:
    """
    Result of a complete transfer session.

    Attributes
    ----------
    total_files : int
        Number of files found by the scanner
    total_bytes : int
        Combined size of the files found by the scanner
    total_directories : int
        Number of directories replicated at the target
    received : int, default=0
        Progress units received by the aggregator
    copied : int, default=0
        Files copied
    skipped : int, default=0
        Files skipped because the destination already existed
    failed : int, default=0
        Files that could not be copied
    bytes_copied : int, default=0
        Bytes written across all copied files
    duration : float, default=0.0
        Elapsed seconds, measured from before the scan
    failures : list[tuple[Path, str]], default=[]
        Failed source paths with their reasons
    interrupted : bool, default=False
        Whether the run was aborted before all files were processed
    """

    total_files: int
    total_bytes: int
    total_directories: int
    received: int = 0
    copied: int = 0
    skipped: int = 0
    failed: int = 0
    bytes_copied: int = 0
    duration: float = 0.0
    failures: list[tuple[Path, str]] = field(default_factory=list)
    interrupted: bool = False

    @property
    def success(self) -> bool:
        """
        Check if every file was copied or skipped.

        Returns
        -------
        bool
            True if nothing failed and the run was not interrupted
        """
        return self.failed == 0 and not self.interrupted

    @property
    def speed_mb_sec(self) -> float:
        """Transfer speed in MB/s over the whole session."""
        if self.duration > 0:
            return (self.bytes_copied / (1024 * 1024)) / self.duration
        return 0.0
