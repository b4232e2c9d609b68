# File: straitjacket/cli.py
"""
straitjacket - Command-Line Interface
=======================================

Renders the wrapper families of every ``@straitjacket`` resource class in a
Python module.

Usage examples::

    # Print the generated module to stdout
    straitjacket resources.py

    # Write it to a file, with a shared metadata type
    straitjacket resources.py -o resources_gen.py --metadata PortaMetadata

    # Check names and collisions without writing anything
    straitjacket resources.py -o resources_gen.py --dry-run -v

Exit codes:
    0: success
    1: validation error
    2: generation error
    3: export error
    4: input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("straitjacket")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root straitjacket logger based on verbosity level.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity >= 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("straitjacket")
    root_logger.setLevel(level)

    # Also drops a diagnostics handler installed at import time
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from straitjacket import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="straitjacket",
        description=(
            "straitjacket: wrapper generator for 3scale Porta collections.\n\n"
            "Reads a Python module, finds the pydantic models decorated with "
            "@straitjacket and emits the module with their envelope, tag and "
            "collection classes added."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s resources.py\n"
            "  %(prog)s resources.py -o resources_gen.py --metadata PortaMetadata\n"
            "  %(prog)s resources.py -o resources_gen.py --dry-run -v\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"straitjacket v{__version__}",
    )

    parser.add_argument(
        "source",
        type=str,
        metavar="SOURCE",
        help="Python module containing the decorated resource classes.",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="PATH",
        help="Write the generated module here instead of stdout.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="FILE",
        help="JSON or YAML file with generation settings.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--metadata",
        type=str,
        default=None,
        metavar="NAME",
        help="Metadata type for resources that do not name one (default: Metadata).",
    )
    config_group.add_argument(
        "--decorator",
        type=str,
        default=None,
        metavar="NAME",
        help="Decorator name marking resource classes (default: straitjacket).",
    )
    config_group.add_argument(
        "--keep-decorator",
        action="store_true",
        default=False,
        help="Leave the decorator on the emitted classes.",
    )
    config_group.add_argument(
        "--no-collision-check",
        action="store_true",
        default=False,
        help="Do not reject item/metadata field name collisions.",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--no-strict",
        action="store_true",
        default=False,
        help="Skip invalid resources instead of aborting.",
    )
    behaviour_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the full pipeline but don't write or print the module.",
    )

    # --- Verbosity ---
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
        help="Suppress all output except errors.",
    )
    verbosity_group.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Trace attribute parsing and naming decisions (same as -vv).",
    )

    return parser


# ---------------------------------------------------------------------------
# Config builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, Any] = {}

    if args.metadata is not None:
        overrides["default_metadata"] = args.metadata
    if args.decorator is not None:
        overrides["decorator_name"] = args.decorator
    if args.keep_decorator:
        overrides["strip_decorator"] = False
    if args.no_collision_check:
        overrides["detect_collisions"] = False
    if args.no_strict:
        overrides["strict"] = False

    # The CLI owns the log handlers; debug only raises verbosity here.
    overrides["debug"] = False
    return overrides


def _report_exit_code(report: Any) -> int:
    if report.success:
        return EXIT_SUCCESS
    if report.input_errors:
        return EXIT_INPUT_ERROR
    if report.validation_errors:
        return EXIT_VALIDATION_ERROR
    if report.generation_errors:
        return EXIT_GENERATION_ERROR
    if report.export_errors:
        return EXIT_EXPORT_ERROR
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    from straitjacket.generator import (
        GenerationReport,
        StraitjacketGenerator,
        load_config_file,
    )
    from straitjacket.models import GenerationConfig

    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    # --- Verbosity ---
    verbosity: int = max(args.verbose, 2 if args.debug else 0)
    if args.quiet:
        verbosity = -1

    # --- Configuration ---
    config: GenerationConfig = GenerationConfig()
    if args.config is not None:
        try:
            config = load_config_file(Path(args.config))
        except (FileNotFoundError, ValueError) as exc:
            _setup_logging(verbosity)
            logger.error("Failed to load config: %s", exc)
            sys.exit(EXIT_INPUT_ERROR)
        if config.debug and not args.quiet:
            verbosity = max(verbosity, 2)

    _setup_logging(verbosity)

    try:
        config = GenerationConfig.model_validate(
            {**config.model_dump(), **_build_config_overrides(args)}
        )
    except ValueError as exc:
        logger.error("Invalid option: %s", exc)
        sys.exit(EXIT_INPUT_ERROR)

    # --- Source path ---
    source_path: Path = Path(args.source).resolve()
    if not source_path.is_file():
        logger.error("Source file not found: %s", source_path)
        sys.exit(EXIT_INPUT_ERROR)

    output_path: Optional[Path] = Path(args.output).resolve() if args.output else None

    logger.info("Source:  %s", source_path)
    logger.info("Output:  %s", output_path or "<stdout>")
    logger.info("Strict:  %s", config.strict)

    # --- Run generation ---
    generator: StraitjacketGenerator = StraitjacketGenerator(config)
    report: GenerationReport = generator.generate_from_file(
        source_path, output_path, dry_run=args.dry_run
    )

    to_stdout: bool = output_path is None and not args.dry_run
    if to_stdout and report.success and report.module is not None:
        sys.stdout.write(report.module.content)
        if verbosity >= 1:
            print(report.summary(), file=sys.stderr)
    elif not args.quiet:
        print(report.summary(), file=sys.stderr if to_stdout else sys.stdout)

    exit_code: int = _report_exit_code(report)
    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("straitjacket.cli loaded.")
