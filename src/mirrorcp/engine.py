"""
Parallel copy engine.

A transfer runs in fixed stages:

- scan the source tree and replicate its directories under the target
- split the file list into one contiguous chunk per worker
- copy the chunks on a thread pool while a single aggregator thread consumes
  per-file progress units from a queue and drives the progress bar
- once the pool has drained, send a sentinel so the aggregator stops even if
  some units never arrived

Workers never share state with each other; the queue is the only object they
all touch.
"""

import contextlib
import hashlib
import logging
import os
import queue
import secrets
import signal
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import xxhash
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from .models import (
    BUFFER_SIZE,
    ConfigurationError,
    CopyOutcome,
    ProgressUnit,
    TransferConfig,
    TransferSummary,
)
from .partition import partition_files
from .scanner import mirror_path, replicate_directories, scan_tree

logger = logging.getLogger(__name__)

# Put on the progress queue after every worker has returned
WORKERS_DONE = None


def format_elapsed(seconds: float) -> str:
    """
    Format a duration as HH:MM:SS.mmm.

    Parameters
    ----------
    seconds : float
        Duration in seconds

    Returns
    -------
    str
        Zero-padded hours, minutes, seconds and milliseconds
    """
    total_ms = int(round(seconds * 1000))
    hours, rem = divmod(total_ms, 3600 * 1000)
    minutes, rem = divmod(rem, 60 * 1000)
    secs, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


# ============================================================================
# Hashing
# ============================================================================


class HashCalculator:
    """
    Incremental file hasher.

    Parameters
    ----------
    algorithm : str, default="xxh64be"
        Hash algorithm to use. Supported: xxh64be, md5, sha1, sha256
    """

    def __init__(self, algorithm: str = "xxh64be"):
        self.algorithm = algorithm.lower()
        if self.algorithm == "xxh64be":
            self._hasher = xxhash.xxh64()
        elif self.algorithm in ["md5", "sha1", "sha256"]:
            self._hasher = hashlib.new(self.algorithm)
        else:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    def update(self, data: bytes) -> None:
        """
        Update hash with new data.

        Parameters
        ----------
        data : bytes
            Data chunk to add to the hash
        """
        self._hasher.update(data)

    def hexdigest(self) -> str:
        """
        Get final hex digest.

        Returns
        -------
        str
            Hexadecimal string representation of the hash
        """
        return self._hasher.hexdigest()

    @staticmethod
    def hash_file(
        path: Path, algorithm: str = "xxh64be", buffer_size: int = BUFFER_SIZE
    ) -> str:
        """
        Hash a whole file.

        Parameters
        ----------
        path : Path
            File to hash
        algorithm : str, default="xxh64be"
            Hash algorithm to use
        buffer_size : int, default=BUFFER_SIZE
            Read block size

        Returns
        -------
        str
            Hexadecimal digest
        """
        hasher = HashCalculator(algorithm)
        with open(path, "rb") as f:
            while chunk := f.read(buffer_size):
                hasher.update(chunk)
        return hasher.hexdigest()


# ============================================================================
# Workers
# ============================================================================


class CopyWorker:
    """
    Copies one chunk of files, reporting a ProgressUnit for each.

    Parameters
    ----------
    source_root : Path
        Root the chunk's files were scanned from
    target_root : Path
        Root to mirror them under
    channel : queue.Queue
        Progress queue shared with the aggregator
    config : TransferConfig
        Session configuration (buffer size, verification)
    abort_event : threading.Event
        Checked between files; when set the worker stops early
    """

    def __init__(
        self,
        source_root: Path,
        target_root: Path,
        channel: queue.Queue,
        config: TransferConfig,
        abort_event: threading.Event,
    ) -> None:
        self.source_root = source_root
        self.target_root = target_root
        self.channel = channel
        self.config = config
        self.abort_event = abort_event

    def run(self, chunk: list[Path]) -> int:
        """
        Process every file in the chunk, in order.

        Parameters
        ----------
        chunk : list[Path]
            Files assigned to this worker

        Returns
        -------
        int
            Number of files processed (less than len(chunk) if aborted)
        """
        processed = 0
        for source in chunk:
            if self.abort_event.is_set():
                logger.debug(
                    f"Abort requested, leaving {len(chunk) - processed} file(s) unprocessed"
                )
                break
            self.channel.put(self.process(source))
            processed += 1
        return processed

    def process(self, source: Path) -> ProgressUnit:
        """
        Resolve one file to a copied, skipped or failed outcome.

        Parameters
        ----------
        source : Path
            Source file

        Returns
        -------
        ProgressUnit
            Outcome to report to the aggregator
        """
        try:
            destination = mirror_path(source, self.source_root, self.target_root)
        except ValueError:
            logger.error(f"{source} is not under {self.source_root}, skipping")
            return ProgressUnit(
                outcome=CopyOutcome.FAILED,
                source=source,
                error=f"Not under source root {self.source_root}",
            )

        if os.path.lexists(destination):
            logger.debug(f"{destination} already exists (skipping)")
            return ProgressUnit(outcome=CopyOutcome.SKIPPED, source=source)

        try:
            bytes_written = self.copy_file(source, destination)
        except OSError as e:
            logger.error(f"Failed to copy {source} to {destination}: {e}")
            return ProgressUnit(outcome=CopyOutcome.FAILED, source=source, error=str(e))

        logger.debug(f"Copied {source} -> {destination} ({bytes_written} bytes)")
        return ProgressUnit(
            outcome=CopyOutcome.COPIED, source=source, bytes_written=bytes_written
        )

    def copy_file(self, source: Path, destination: Path) -> int:
        """
        Copy file contents through a temporary file and rename into place.

        Parameters
        ----------
        source : Path
            Source file
        destination : Path
            Final destination path (its parent must exist)

        Returns
        -------
        int
            Number of bytes written

        Raises
        ------
        OSError
            If reading, writing, verification or the rename fails
        """
        # Unique per attempt; "xb" refuses to reuse a path someone else owns
        temp_file = (
            destination.parent / f".{destination.name}.{secrets.token_hex(8)}.tmp"
        )
        hasher = HashCalculator(self.config.hash_algorithm) if self.config.verify else None
        bytes_written = 0
        created = False

        try:
            with open(source, "rb") as src:
                with open(temp_file, "xb") as dst:
                    created = True
                    while chunk := src.read(self.config.buffer_size):
                        if hasher:
                            hasher.update(chunk)
                        dst.write(chunk)
                        bytes_written += len(chunk)

            if hasher:
                source_hash = hasher.hexdigest()
                dest_hash = HashCalculator.hash_file(
                    temp_file, self.config.hash_algorithm, self.config.buffer_size
                )
                if dest_hash != source_hash:
                    raise OSError(f"Hash mismatch: {dest_hash} != {source_hash}")

            temp_file.replace(destination)
        except OSError:
            if created:
                with contextlib.suppress(OSError):
                    temp_file.unlink(missing_ok=True)
            raise

        return bytes_written


# ============================================================================
# Progress aggregation
# ============================================================================


class ProgressAggregator:
    """
    Single consumer of the progress queue.

    Runs on its own thread until it has received one unit per scanned file or
    the WORKERS_DONE sentinel arrives, whichever comes first.

    Parameters
    ----------
    channel : queue.Queue
        Progress queue written by the workers
    total_files : int
        Number of units expected
    show_progress : bool, default=True
        Render a tqdm bar
    poll_interval : float, default=1.0
        Seconds to wait for a unit before polling again
    """

    def __init__(
        self,
        channel: queue.Queue,
        total_files: int,
        show_progress: bool = True,
        poll_interval: float = 1.0,
    ) -> None:
        self.channel = channel
        self.total_files = total_files
        self.show_progress = show_progress
        self.poll_interval = poll_interval
        self.received = 0
        self.copied = 0
        self.skipped = 0
        self.failed = 0
        self.bytes_copied = 0
        self.failures: list[tuple[Path, str]] = []
        self._thread: threading.Thread | None = None

    def start(self) -> threading.Thread:
        """Start the aggregator thread."""
        self._thread = threading.Thread(
            target=self.run, name="ProgressAggregator", daemon=True
        )
        self._thread.start()
        return self._thread

    def join(self) -> None:
        if self._thread is not None:
            self._thread.join()

    def run(self) -> None:
        """Consume progress units until the target count or the sentinel."""
        bar = tqdm(
            total=self.total_files,
            unit="file",
            desc="Copying",
            dynamic_ncols=True,
            disable=not self.show_progress,
        )
        try:
            while self.received < self.total_files:
                try:
                    unit = self.channel.get(timeout=self.poll_interval)
                except queue.Empty:
                    continue

                if unit is WORKERS_DONE:
                    break

                self.record(unit)
                bar.update(1)
                if unit.outcome == CopyOutcome.FAILED:
                    bar.set_postfix(failed=self.failed)
        finally:
            bar.close()

        logger.info(f"{self.received}/{self.total_files} files copied")

    def record(self, unit: ProgressUnit) -> None:
        """
        Count a single progress unit.

        Parameters
        ----------
        unit : ProgressUnit
            Unit received from a worker
        """
        self.received += 1
        if unit.outcome == CopyOutcome.COPIED:
            self.copied += 1
            self.bytes_copied += unit.bytes_written
        elif unit.outcome == CopyOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
            self.failures.append((unit.source, unit.error or "unknown error"))


# ============================================================================
# Session
# ============================================================================


class TransferSession:
    """
    Orchestrates one complete mirror of a source tree.

    Parameters
    ----------
    config : TransferConfig
        Session configuration
    abort_event : threading.Event | None, default=None
        Optional custom abort event. When omitted the session creates its own
        and sets it on SIGINT while running on the main thread.
    """

    def __init__(
        self, config: TransferConfig, abort_event: threading.Event | None = None
    ) -> None:
        self.config = config
        self._owns_abort_event = abort_event is None
        self.abort_event = abort_event if abort_event else threading.Event()
        self.start_time: float | None = None
        self.total_files = 0

    def run(self) -> TransferSummary:
        """
        Execute the transfer.

        Returns
        -------
        TransferSummary
            Totals, per-outcome tallies and elapsed time

        Raises
        ------
        ConfigurationError
            If the source is not a directory or the target cannot be created
        """
        self._prepare_target()
        with self._interrupt_handler():
            return self._transfer()

    def abort(self) -> None:
        """Ask workers to stop after the file they are currently copying."""
        self.abort_event.set()

    def _prepare_target(self) -> None:
        source = self.config.source
        target = self.config.target

        if not source.is_dir():
            raise ConfigurationError(f"Source must be a directory: {source}")

        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Failed to create target directory {target}: {e}"
            ) from e

    def _transfer(self) -> TransferSummary:
        source = self.config.source
        target = self.config.target
        self.start_time = time.monotonic()

        logger.info("Gathering folder structure...")
        scan = scan_tree(source)
        self.total_files = scan.total_files
        logger.info(
            f"Total files / folders: {scan.total_files} / {len(scan.directories)}"
        )

        replicate_directories(scan.directories, source, target)
        logger.info("Created all folders in destination.")

        chunks = partition_files(scan.files, self.config.workers)
        logger.debug(
            f"Dispatching {len(chunks)} chunk(s) to {self.config.workers} worker(s)"
        )

        channel: queue.Queue = queue.Queue()
        aggregator = ProgressAggregator(
            channel, scan.total_files, show_progress=self.config.show_progress
        )

        redirect = (
            logging_redirect_tqdm()
            if self.config.show_progress
            else contextlib.nullcontext()
        )
        with redirect:
            aggregator.start()
            try:
                with ThreadPoolExecutor(
                    max_workers=self.config.workers, thread_name_prefix="copy-worker"
                ) as executor:
                    futures = [
                        executor.submit(
                            CopyWorker(
                                source, target, channel, self.config, self.abort_event
                            ).run,
                            chunk,
                        )
                        for chunk in chunks
                    ]
            finally:
                channel.put(WORKERS_DONE)
                aggregator.join()

        # Surface anything a worker raised outside its per-file handling
        for future in futures:
            future.result()

        summary = TransferSummary(
            total_files=scan.total_files,
            total_bytes=scan.total_bytes,
            total_directories=len(scan.directories),
            received=aggregator.received,
            copied=aggregator.copied,
            skipped=aggregator.skipped,
            failed=aggregator.failed,
            bytes_copied=aggregator.bytes_copied,
            duration=time.monotonic() - self.start_time,
            failures=aggregator.failures,
            interrupted=(
                self.abort_event.is_set() and aggregator.received < scan.total_files
            ),
        )
        self._report(summary)
        return summary

    def _report(self, summary: TransferSummary) -> None:
        logger.info(
            f"Copied {summary.copied}, skipped {summary.skipped}, "
            f"failed {summary.failed} "
            f"({summary.bytes_copied:,} of {summary.total_bytes:,} bytes, "
            f"{summary.speed_mb_sec:.1f} MB/sec)"
        )
        for path, reason in summary.failures:
            logger.error(f"✗ {path}: {reason}")
        if summary.interrupted:
            logger.warning(
                f"Copy interrupted: {summary.total_files - summary.received} "
                f"file(s) not processed"
            )
        logger.info(f"Elapsed time: {format_elapsed(summary.duration)}")

    @contextlib.contextmanager
    def _interrupt_handler(self):
        """Install a SIGINT handler for the duration of the run."""
        if (
            not self._owns_abort_event
            or threading.current_thread() is not threading.main_thread()
        ):
            yield
            return

        previous = signal.signal(signal.SIGINT, self._handle_interrupt)
        try:
            yield
        finally:
            signal.signal(signal.SIGINT, previous)

    def _handle_interrupt(self, signum, frame):
        """
        Handle Ctrl+C gracefully - workers stop before their next file.

        Parameters
        ----------
        signum : int
            Signal number
        frame : frame
            Current stack frame
        """
        if not self.abort_event.is_set():
            logger.warning("Copy interrupted, finishing files in progress...")
            self.abort()
