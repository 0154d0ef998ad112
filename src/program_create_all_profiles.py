"""Create all council area profiles.

This script validates the council area profiles workbook, generates the
content for every council area in parallel, and renders one HTML profile
per area. Paths and fixed values come from ``src.config``; worker count
and the schema gate come from ``PipelineSettings`` and may be overridden
on the command line.

Usage
-----
python -m src.program_create_all_profiles [--dataset-path ...] [--workers N] [--strict-schema] [--area NAME ...]

Notes
-----
Exit status is 0 when every profile was rendered, 1 when a stage gate or
the strict schema gate stopped the run, 2 for configuration errors.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from rich.console import Console

from src.config import (
    COUNCIL_AREAS,
    DATASET_PATH,
    LOG_DIR,
    LOG_FILENAME_CREATE_PROFILES,
    LOG_FORMAT,
    OUTPUT_DIR,
    PROFILE_TEMPLATE_PATH,
    TEMP_DIR,
    WORKER_KINDS,
)
from src.exceptions import AppError, ConfigurationError, SchemaViolationError, StageGateError
from src.pipeline.profiles import PipelineSettings, ProfilePipeline
from src.pipeline.profiles.summary import print_summary

logger = logging.getLogger(__name__)


def configure_logging(log_level: str = "INFO", enable_file: bool = True) -> None:
    """Configure console logging and, optionally, the run log file.

    Parameters
    ----------
    log_level : str
        Logging level as a string (e.g., ``"INFO"``, ``"DEBUG"``).
    enable_file : bool
        If ``True``, also append to ``logs/create_all_profiles.log``.
    """
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if enable_file:
        try:
            LOG_DIR.mkdir(exist_ok=True)
            handlers.insert(
                0,
                logging.FileHandler(LOG_DIR / LOG_FILENAME_CREATE_PROFILES, mode="a"),
            )
        except OSError as exc:
            print(f"File logging disabled: {exc}", file=sys.stderr)
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns
    -------
    argparse.Namespace
        Paths, worker options, schema gate flag, area subset and log level.
    """
    parser = argparse.ArgumentParser(
        description="Validate the council area dataset and render every profile."
    )
    parser.add_argument("--dataset-path", type=Path, default=DATASET_PATH)
    parser.add_argument("--template-path", type=Path, default=PROFILE_TEMPLATE_PATH)
    parser.add_argument("--temp-dir", type=Path, default=TEMP_DIR)
    parser.add_argument("--output-dir", type=Path, default=OUTPUT_DIR)
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of workers (default: N_WORKERS or the CPU count).",
    )
    parser.add_argument("--worker-kind", choices=WORKER_KINDS, default=None)
    parser.add_argument(
        "--strict-schema",
        action="store_true",
        default=None,
        help="Abort when the dataset fails error-level expectations.",
    )
    parser.add_argument(
        "--area",
        action="append",
        dest="areas",
        default=None,
        help="Only build this council area; may be repeated.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=os.environ.get("LOG_LEVEL", "INFO"),
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the profile pipeline from CLI arguments and return the exit status."""
    args = parse_arguments(argv)
    disable_file = bool(
        os.environ.get("DISABLE_FILE_LOGS") or os.environ.get("PYTEST_CURRENT_TEST")
    )
    configure_logging(args.log_level, enable_file=not disable_file)
    console = Console()

    try:
        settings = PipelineSettings(
            n_workers=args.workers,
            worker_kind=args.worker_kind,
            strict_schema=args.strict_schema,
        )
        areas = tuple(args.areas) if args.areas else COUNCIL_AREAS
        unknown = [a for a in areas if a not in COUNCIL_AREAS]
        if unknown:
            raise ConfigurationError(f"Unknown council areas: {', '.join(unknown)}")
        if len(set(areas)) != len(areas):
            raise ConfigurationError("Each --area may only be given once")
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 2

    logger.info("Starting profile creation for %d council areas (%r)", len(areas), settings)
    pipeline = ProfilePipeline(
        settings=settings,
        temp_dir=args.temp_dir,
        output_dir=args.output_dir,
        template_path=args.template_path,
    )
    try:
        result = pipeline.run(args.dataset_path, areas)
    except (StageGateError, SchemaViolationError) as exc:
        if pipeline.reports:
            print_summary(pipeline.reports, console=console)
        console.print(f"[red]{exc.message}[/red]")
        logger.error("Run aborted: %s", exc.to_dict())
        return 1
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 2
    except AppError as exc:
        console.print(f"[red]{exc}[/red]")
        logger.error("Run failed: %s", exc.to_dict())
        return 1
    print_summary(result.reports, result.elapsed_seconds, console=console)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
