#!/usr/bin/env python3
"""
Tests for the command-line layer: argument parsing, configuration and exit codes.
"""

import argparse
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from mirrorcp import ConfigurationError, TransferConfig
from mirrorcp.main import main, parse_arguments, setup_logging


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


# ============================================================================
# Argument parsing
# ============================================================================


def test_basic_argument_parsing() -> None:
    """Test the three required positional arguments and defaults."""
    with patch("sys.argv", ["mirrorcp", "/src", "/dst", "4"]):
        args = parse_arguments()

    assert args.source == "/src"
    assert args.target == "/dst"
    assert args.workers == 4
    assert not args.verbose
    assert not args.verify
    assert not args.no_progress
    assert args.hash == "xxh64be"
    assert args.buffer_size == 8 * 1024 * 1024


def test_optional_flags() -> None:
    """Test verbose, verify, hash, buffer size and progress options."""
    args = parse_arguments(
        ["-v", "--verify", "-t", "sha256", "-b", "65536", "--no-progress", "a", "b", "2"]
    )

    assert args.verbose
    assert args.verify
    assert args.hash == "sha256"
    assert args.buffer_size == 65536
    assert args.no_progress


def test_missing_worker_count() -> None:
    """Test that all three positionals are required."""
    with pytest.raises(SystemExit):
        parse_arguments(["/src", "/dst"])


def test_non_integer_worker_count() -> None:
    with pytest.raises(SystemExit):
        parse_arguments(["/src", "/dst", "many"])


def test_invalid_hash_choice() -> None:
    with pytest.raises(SystemExit):
        parse_arguments(["-t", "crc32", "/src", "/dst", "2"])


# ============================================================================
# Configuration
# ============================================================================


def test_config_from_args() -> None:
    """Test building a TransferConfig from parsed arguments."""
    args = parse_arguments(["--verify", "-t", "md5", "--no-progress", "/src", "/dst", "3"])

    config = TransferConfig.from_args(args)

    assert config.source == Path("/src")
    assert config.target == Path("/dst")
    assert config.workers == 3
    assert config.verify
    assert config.hash_algorithm == "md5"
    assert not config.show_progress


def test_config_from_args_without_hash() -> None:
    """Test that an empty hash option falls back to xxh64be."""
    args = argparse.Namespace(
        source="/src",
        target="/dst",
        workers=1,
        buffer_size=1024,
        verify=False,
        hash=None,
        no_progress=False,
        verbose=False,
    )

    assert TransferConfig.from_args(args).hash_algorithm == "xxh64be"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"workers": 0},
        {"workers": -3},
        {"workers": 2, "buffer_size": 0},
        {"workers": 2, "hash_algorithm": "crc32"},
    ],
)
def test_config_validation(kwargs) -> None:
    """Test that invalid settings are configuration errors."""
    with pytest.raises(ConfigurationError):
        TransferConfig(Path("/src"), Path("/dst"), **kwargs)


def test_configuration_error_is_value_error() -> None:
    assert issubclass(ConfigurationError, ValueError)


# ============================================================================
# Logging setup
# ============================================================================


def test_setup_logging_info_level(restore_root_logger) -> None:
    """Test logging setup with INFO level."""
    setup_logging(verbose=False)

    assert restore_root_logger.level == logging.INFO


def test_setup_logging_debug_level(restore_root_logger) -> None:
    """Test logging setup with DEBUG level."""
    setup_logging(verbose=True)

    assert restore_root_logger.level == logging.DEBUG


# ============================================================================
# Entry point
# ============================================================================


@patch("mirrorcp.main.setup_logging")
def test_main_success(mock_logging, sample_tree) -> None:
    """Test a full run through the CLI."""
    source, target = sample_tree

    exit_code = main(["--no-progress", str(source), str(target), "2"])

    assert exit_code == 0
    assert (target / "sub" / "c.txt").read_bytes() == (source / "sub" / "c.txt").read_bytes()
    mock_logging.assert_called_once_with(False)


@patch("mirrorcp.main.setup_logging")
def test_main_zero_workers(mock_logging, sample_tree) -> None:
    """Test that worker count 0 exits with an error and creates nothing."""
    source, target = sample_tree

    exit_code = main(["--no-progress", str(source), str(target), "0"])

    assert exit_code == 1
    assert not target.exists()


@patch("mirrorcp.main.setup_logging")
def test_main_source_not_directory(mock_logging, test_dir) -> None:
    """Test that a missing source exits with an error."""
    exit_code = main(["--no-progress", str(test_dir / "missing"), str(test_dir / "dst"), "2"])

    assert exit_code == 1
    assert not (test_dir / "dst").exists()


@patch("mirrorcp.main.setup_logging")
def test_main_reports_failures(mock_logging, sample_tree) -> None:
    """Test that failed files produce a non-zero exit code."""
    source, target = sample_tree

    with patch("mirrorcp.engine.CopyWorker.copy_file", side_effect=OSError("denied")):
        exit_code = main(["--no-progress", str(source), str(target), "2"])

    assert exit_code == 1


@patch("mirrorcp.main.setup_logging")
def test_main_keyboard_interrupt(mock_logging, sample_tree) -> None:
    """Test that a KeyboardInterrupt maps to exit code 130."""
    source, target = sample_tree

    with patch("mirrorcp.main.TransferSession.run", side_effect=KeyboardInterrupt):
        exit_code = main(["--no-progress", str(source), str(target), "2"])

    assert exit_code == 130


def test_config_normalizes_hash_case() -> None:
    config = TransferConfig(Path("/src"), Path("/dst"), workers=1, hash_algorithm="SHA1")

    assert config.hash_algorithm == "sha1"
