"""
Source tree discovery and directory replication.
"""

import logging
import os
from pathlib import Path

from .models import ScanResult

logger = logging.getLogger(__name__)


def scan_tree(source_root: Path) -> ScanResult:
    """
    Walk the source tree and collect every directory and regular file.

    Traversal is depth-first with entries sorted by name. The files of a
    directory come before those of its subdirectories, and repeated scans of
    an unchanged tree produce identical lists. Symlinks are not followed and
    are neither files nor directories here. Entries that cannot be read are
    left out.

    Parameters
    ----------
    source_root : Path
        Directory to scan

    Returns
    -------
    ScanResult
        Directories (source_root first), files and their combined size
    """
    source_root = Path(source_root)
    result = ScanResult()
    stack = [source_root]

    while stack:
        directory = stack.pop()
        result.directories.append(directory)

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {directory}: {e}")
            continue

        subdirs = []
        for entry in entries:
            path = directory / entry.name
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(path)
                elif entry.is_file(follow_symlinks=False):
                    size = entry.stat(follow_symlinks=False).st_size
                    result.files.append(path)
                    result.total_bytes += size
            except OSError as e:
                logger.debug(f"Skipping unreadable entry {path}: {e}")

        # Reversed so the first subdirectory by name is walked next
        stack.extend(reversed(subdirs))

    return result


def mirror_path(path: Path, source_root: Path, target_root: Path) -> Path:
    """
    Map a path beneath source_root to the same relative path under target_root.

    Raises
    ------
    ValueError
        If path does not lie under source_root
    """
    return Path(target_root) / Path(path).relative_to(source_root)


def replicate_directories(
    directories: list[Path], source_root: Path, target_root: Path
) -> list[Path]:
    """
    Recreate the scanned directory hierarchy under target_root.

    Safe to run on an already replicated tree.

    Parameters
    ----------
    directories : list[Path]
        Directories found by scan_tree
    source_root : Path
        Root the directories were scanned from
    target_root : Path
        Root to create them under

    Returns
    -------
    list[Path]
        Mirrored directory paths, in input order

    Raises
    ------
    OSError
        If a directory cannot be created
    """
    created = []
    for directory in directories:
        dest_dir = mirror_path(directory, source_root, target_root)
        dest_dir.mkdir(parents=True, exist_ok=True)
        created.append(dest_dir)
    return created
