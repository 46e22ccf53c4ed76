#!/usr/bin/env python3
"""
mirrorcp - Mirror a directory tree using parallel copy workers.

Every file beneath the source is copied to the same relative path under the
target. Files that already exist at the target are skipped, so an interrupted
run can simply be started again.
"""

import argparse
import logging
import sys

from .engine import TransferSession
from .models import BUFFER_SIZE, HASH_ALGORITHMS, TransferConfig

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the application.

    Parameters
    ----------
    verbose : bool
        Enable verbose logging
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Parameters
    ----------
    argv : list[str] | None, default=None
        Arguments to parse (defaults to sys.argv[1:])

    Returns
    -------
    argparse.Namespace
        Parsed command line arguments
    """
    parser = argparse.ArgumentParser(
        prog="mirrorcp",
        description="Mirror a directory tree using parallel copy workers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s /media/card /backup/card 8            # Copy with 8 workers
  %(prog)s --verify -t md5 /source /dest 4       # Re-hash every copied file
  %(prog)s --no-progress /source /dest 2         # Plain log output only
        """,
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )

    parser.add_argument(
        "-b",
        "--buffer-size",
        type=int,
        default=BUFFER_SIZE,
        help="Buffer size in bytes (default: 8MB)",
    )

    parser.add_argument(
        "--verify",
        action="store_true",
        help="Verify each copied file by comparing hashes",
    )

    parser.add_argument(
        "-t",
        "--hash",
        type=str,
        default="xxh64be",
        choices=HASH_ALGORITHMS,
        help="Hash algorithm for --verify (default: xxh64be)",
    )

    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the live progress bar",
    )

    parser.add_argument("source", type=str, help="Source directory")
    parser.add_argument("target", type=str, help="Target directory (created if missing)")
    parser.add_argument("workers", type=int, help="Number of parallel copy workers")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Returns
    -------
    int
        Exit code: 0 for success, 1 for failure, 130 for keyboard interrupt
    """
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    try:
        config = TransferConfig.from_args(args)
        summary = TransferSession(config).run()

        if summary.interrupted:
            logger.error("Operation interrupted by user")
            return 130
        if summary.success:
            logger.info(
                f"All copy operations completed successfully ({summary.received} files)"
            )
            return 0

        logger.error(f"Some copy operations failed ({summary.failed} failures)")
        return 1

    except KeyboardInterrupt:
        logger.error("Operation interrupted by user")
        return 130
    except ValueError as e:
        logger.error(f"Invalid parameter: {e}")
        return 1
    except OSError as e:
        logger.error(f"I/O error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
