"""Shared fixtures for the mirrorcp test suite."""

import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def test_dir():
    """Create and cleanup a scratch directory."""
    path = tempfile.mkdtemp()
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def sample_tree(test_dir):
    """
    Source tree with two directories and three files.

    Layout::

        src/a.txt
        src/sub/b.txt
        src/sub/c.txt
    """
    source = test_dir / "src"
    (source / "sub").mkdir(parents=True)
    (source / "a.txt").write_bytes(b"alpha")
    (source / "sub" / "b.txt").write_bytes(b"bravo" * 100)
    (source / "sub" / "c.txt").write_bytes(b"charlie" * 1000)
    target = test_dir / "dst"
    return source, target
