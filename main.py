import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from listing_pipeline.completeness import check_completeness, load_expected_units, write_rescrape_tasks
from listing_pipeline.config import (
    LOG_LEVEL,
    OUTPUT_DIR,
    QUERY_DELIMITER,
    QUERY_LIST,
    RESCRAPE_REPORT_NAME,
    SHARD_DIR,
    SHARD_GLOB,
    SIMILARITY_METRIC,
    SIMILARITY_THRESHOLD,
)
from listing_pipeline.models import ShardLoadError
from listing_pipeline.pipeline import run_pipeline
from listing_pipeline.validators import resolve_bounding_box


def discover_shards(shard_dir: str, pattern: str = SHARD_GLOB) -> List[Path]:
    """Shard files in `shard_dir`, sorted by name so runs are repeatable."""
    return sorted(p for p in Path(shard_dir).glob(pattern) if p.is_file())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Consolidate and validate scraped business listing shards")
    parser.add_argument("--shard-dir", default=SHARD_DIR, help="Directory holding the scraped shards")
    parser.add_argument("--output-dir", default=OUTPUT_DIR, help="Directory for exports and reports")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Report missing or failed queries for re-scraping")
    check_parser.add_argument("--queries", default=QUERY_LIST, help="Expected query list")
    check_parser.add_argument("--query-delimiter", default=QUERY_DELIMITER, help="Field delimiter of the query list")

    run_parser = subparsers.add_parser("run", help="Run the full consolidation pipeline")
    run_parser.add_argument("--threshold", type=float, default=SIMILARITY_THRESHOLD, help="Similarity threshold")
    run_parser.add_argument("--metric", default=SIMILARITY_METRIC, help="rapidfuzz similarity metric")
    run_parser.add_argument("--city", help="Target city for the geo check; defaults to BOUNDING_BOX, then TARGET_CITY")
    run_parser.add_argument("--bbox", help="Bounding box override: lat_min,lat_max,lon_min,lon_max")
    run_parser.add_argument(
        "--normalize-identity",
        action="store_true",
        help="Trim and case-fold text fields before comparing duplicates",
    )
    return parser


def check(args: argparse.Namespace) -> int:
    shards = discover_shards(args.shard_dir)
    expected = load_expected_units(args.queries, delimiter=args.query_delimiter)
    report = check_completeness(expected, shards)
    tasks = report.rescrape_tasks()
    write_rescrape_tasks(tasks, Path(args.output_dir) / RESCRAPE_REPORT_NAME)
    if report.missing_units:
        logger.warning(f"Missing queries: {sorted(report.missing_units)}")
    return 0 if not tasks else 1


def run(args: argparse.Namespace) -> int:
    shards = discover_shards(args.shard_dir)
    if not shards:
        logger.error(f"No shards found in {args.shard_dir}")
        return 1
    bbox = resolve_bounding_box(args.city, override=args.bbox)
    result = asyncio.run(
        run_pipeline(
            shards,
            output_dir=args.output_dir,
            bounding_box=bbox,
            threshold=args.threshold,
            metric=args.metric,
            normalize_identity=args.normalize_identity,
        )
    )
    for name, path in result.outputs.items():
        logger.info(f"{name}: {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the `check` and `run` commands.

    Returns the process exit code: 0 on success, 1 when configuration is
    invalid, inputs are unreadable, or re-scrape tasks remain.
    """
    # Initialize logs
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=LOG_LEVEL, format="<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | <level>{message}</level>")

    args = build_parser().parse_args(argv)
    try:
        if args.command == "check":
            return check(args)
        return run(args)
    # ConfigError and unreadable query lists surface as ValueError
    except (ShardLoadError, OSError, ValueError) as e:
        logger.error(str(e))
        return 1


def cli() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    cli()
