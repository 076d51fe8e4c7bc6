# File: dtogen/cli.py
"""
dtogen - Command-Line Interface
================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Generate into ./shop (reads ./shop/db.json and ./shop/custom_queries.conf)
    python -m dtogen ./shop

    # Verbose output
    dtogen ./shop -vv

Exit codes:
    0 - success
    1 - configuration error (directory, db.json, dbms, language)
    2 - introspection error
    3 - custom query descriptor error
    4 - generation error
    5 - export error
    6 - usage error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, NoReturn, Optional, Sequence, Type

from dtogen.errors import (
    ConfigurationError,
    DescriptorParseError,
    DtoGenError,
    ExportError,
    GenerationError,
    IntrospectionError,
)

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_CONFIGURATION_ERROR: int = 1
EXIT_INTROSPECTION_ERROR: int = 2
EXIT_DESCRIPTOR_ERROR: int = 3
EXIT_GENERATION_ERROR: int = 4
EXIT_EXPORT_ERROR: int = 5
EXIT_USAGE_ERROR: int = 6

_EXIT_CODES: Dict[Type[DtoGenError], int] = {
    ConfigurationError: EXIT_CONFIGURATION_ERROR,
    IntrospectionError: EXIT_INTROSPECTION_ERROR,
    DescriptorParseError: EXIT_DESCRIPTOR_ERROR,
    GenerationError: EXIT_GENERATION_ERROR,
    ExportError: EXIT_EXPORT_ERROR,
}


def exit_code_for(error: Optional[DtoGenError]) -> int:
    if error is None:
        return EXIT_SUCCESS
    for error_type, code in _EXIT_CODES.items():
        if isinstance(error, error_type):
            return code
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``dtogen`` logger.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    formatter: logging.Formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("dtogen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


class _UsageErrorParser(argparse.ArgumentParser):
    """``argparse`` parser that exits with ``EXIT_USAGE_ERROR`` on bad arguments."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stdout)
        print(f"{self.prog}: error: {message}")
        sys.exit(EXIT_USAGE_ERROR)


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from dtogen import __version__

    parser: argparse.ArgumentParser = _UsageErrorParser(
        prog="dtogen",
        description=(
            "Generate a data-access layer (entities, CRUD functions, custom "
            "queries) from a live PostgreSQL schema.\n\n"
            "The target directory holds db.json and, optionally, "
            "custom_queries.conf; its name becomes the package name."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"dtogen v{__version__}",
    )
    parser.add_argument(
        "target_dir",
        metavar="DIR",
        help="Target directory; its name must match ^[a-z0-9]+$.",
    )

    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Print only the outcome line.",
    )
    return parser


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse *argv*, run the pipeline and return the exit code."""
    from dtogen.generator import DtoGenerator, GenerationReport

    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        logging.disable(logging.CRITICAL)
    else:
        logging.disable(logging.NOTSET)
        _setup_logging(args.verbose)

    target_dir: Path = Path(args.target_dir)
    logger.info("Target: %s", target_dir.resolve())

    report: GenerationReport = DtoGenerator().run(target_dir)
    exit_code: int = exit_code_for(report.error)

    if args.quiet:
        print("ok" if report.success else f"error: {report.errors[0]}")
    else:
        print(report.summary())

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)
    return exit_code


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.
    """
    sys.exit(run(argv))


def main() -> None:
    """Console-script entry point."""
    cli_main()


__all__: List[str] = [
    "cli_main",
    "main",
    "run",
    "exit_code_for",
    "EXIT_SUCCESS",
    "EXIT_CONFIGURATION_ERROR",
    "EXIT_INTROSPECTION_ERROR",
    "EXIT_DESCRIPTOR_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_USAGE_ERROR",
]

logger.debug("dtogen.cli loaded.")
