"""Main entry point for running a pipeline from a JSON file."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

from etl_pipeline.config import configure_logging, get_logger, settings
from etl_pipeline.services import PipelineError, PipelineProcessor

logger = get_logger(__name__)


def load_pipeline_file(path: Path, extra_search_paths: list[str]) -> dict[str, Any]:
    """Read a pipeline definition and append extra search paths.

    Relative search paths in the file are taken relative to the file itself.

    Args:
        path: Pipeline JSON file
        extra_search_paths: Search paths tried after the file's own

    Returns:
        Pipeline configuration mapping
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise PipelineError(f"{path} must contain a JSON object")

    file_paths = data.get("searchPaths", data.get("search_paths", []))
    if isinstance(file_paths, list) and all(isinstance(p, str) for p in file_paths):
        data.pop("search_paths", None)
        data["searchPaths"] = [
            *(p if Path(p).is_absolute() else str(path.parent / p) for p in file_paths),
            *extra_search_paths,
        ]

    return data


async def run_pipeline(config: dict[str, Any]) -> dict[str, Any]:
    """Run a pipeline and collect its results.

    Args:
        config: Pipeline configuration mapping

    Returns:
        Results dictionary; contains the error when the run failed
    """
    processor = PipelineProcessor(config)
    try:
        return await processor.run()
    except Exception as e:
        logger.error(
            "Pipeline failed",
            pipeline=processor.name,
            error=str(e),
            exc_info=True,
        )
        return processor.get_results()


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(description="Run an ETL pipeline defined in a JSON file")
    parser.add_argument(
        "config_file",
        nargs="?",
        default=settings.pipeline.config_file,
        help=f"Pipeline JSON file (default: {settings.pipeline.config_file})",
    )
    parser.add_argument(
        "--search-path",
        action="append",
        default=[],
        dest="search_paths",
        help="Extra root for step modules, may be repeated",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override LOG_LEVEL",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        help="Override LOG_FORMAT",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run the command line interface.

    Args:
        argv: Arguments, defaults to sys.argv

    Returns:
        Exit code, 0 when the pipeline completed
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    logger.info("Starting ETL pipeline", environment=settings.environment)

    try:
        config = load_pipeline_file(
            Path(args.config_file),
            [*args.search_paths, *settings.pipeline.search_paths],
        )
        results = asyncio.run(run_pipeline(config))
    except (OSError, ValueError, PipelineError) as e:
        logger.error("Could not start pipeline", config_file=args.config_file, error=str(e))
        print(json.dumps({"success": False, "error": str(e)}))
        return 1

    print(json.dumps(results, indent=2, default=str))
    return 0 if results.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
