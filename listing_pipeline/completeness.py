"""
Completeness check of produced shards against the expected query list.

Identifies which queries have to be scraped again; it never re-scrapes
anything itself.
"""
import csv
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Set, Union

import pandas as pd
from loguru import logger

from listing_pipeline.config import EXPORT_DIALECT, MIN_SHARD_ROW_RATIO, QUERY_DELIMITER, SHARD_DELIMITER
from listing_pipeline.loader import read_shard
from listing_pipeline.models import QUERY_COLUMN, CompletenessReport, RescrapeTask, ShardLoadError

PathLike = Union[str, Path]


def _clean_units(values: Iterable[object]) -> Set[str]:
    return {v.strip() for v in values if isinstance(v, str) and v.strip()}


def load_expected_units(path: PathLike, delimiter: str = QUERY_DELIMITER) -> Set[str]:
    """
    Read the expected query list.

    A file with a `Query` header column uses that column; anything else is
    treated as a headerless list whose first column holds the queries.
    """
    path = Path(path)
    frame = pd.read_csv(
        path, sep=delimiter, dtype=str, keep_default_na=False, encoding="utf-8-sig", engine="python"
    )
    if QUERY_COLUMN in [str(c).strip() for c in frame.columns]:
        frame.columns = [str(c).strip() for c in frame.columns]
        units = _clean_units(frame[QUERY_COLUMN])
    else:
        frame = pd.read_csv(
            path, sep=delimiter, dtype=str, header=None, keep_default_na=False,
            encoding="utf-8-sig", engine="python",
        )
        units = _clean_units(frame.iloc[:, 0])
    logger.info(f"Loaded {len(units)} expected units from {path}")
    return units


def check_completeness(
    expected_units: Iterable[str],
    shard_paths: Sequence[PathLike],
    min_row_ratio: float = MIN_SHARD_ROW_RATIO,
    delimiter: str = SHARD_DELIMITER,
) -> CompletenessReport:
    """
    Compare the expected query units with what the shards actually contain.

    Args:
        expected_units: Every query that was handed out to the scrapers.
        shard_paths: Produced shard files.
        min_row_ratio: Shards with fewer rows than this fraction of the mean
                       shard size are flagged as incomplete.
        delimiter: Shard field delimiter.

    Returns:
        CompletenessReport: produced / missing units plus flagged shards.
    """
    expected = _clean_units(expected_units)
    row_counts: Dict[str, int] = {}
    units_by_shard: Dict[str, Set[str]] = {}
    corrupt: List[str] = []

    for path in shard_paths:
        try:
            frame = read_shard(path, delimiter=delimiter)
        except ShardLoadError as e:
            logger.warning(f"Corrupt shard, needs re-scrape: {e}")
            corrupt.append(str(path))
            continue
        row_counts[str(path)] = len(frame)
        units_by_shard[str(path)] = _clean_units(frame[QUERY_COLUMN])

    mean_rows = sum(row_counts.values()) / len(row_counts) if row_counts else 0.0
    incomplete = [
        shard for shard, n in row_counts.items()
        if n == 0 or n < min_row_ratio * mean_rows
    ]
    for shard in incomplete:
        logger.warning(f"Incomplete shard {shard}: {row_counts[shard]} rows (mean {mean_rows:.1f})")

    seen: Set[str] = set()
    for units in units_by_shard.values():
        seen |= units
    produced = seen & expected
    missing = expected - produced

    healthy: Set[str] = set()
    for shard, units in units_by_shard.items():
        if shard not in incomplete:
            healthy |= units
    incomplete_units: Dict[str, str] = {}
    for shard in incomplete:
        for unit in sorted((units_by_shard[shard] & expected) - healthy):
            incomplete_units.setdefault(unit, shard)

    report = CompletenessReport(
        expected_units=expected,
        produced_units=produced,
        missing_units=missing,
        unexpected_units=seen - expected,
        incomplete_shards=incomplete,
        corrupt_shards=corrupt,
        incomplete_units=incomplete_units,
    )
    logger.info(
        f"Completeness: {len(produced)}/{len(expected)} units produced, {len(missing)} missing, "
        f"{len(incomplete)} incomplete shards, {len(corrupt)} corrupt shards"
    )
    if report.unexpected_units:
        logger.warning(f"{len(report.unexpected_units)} produced queries are not in the expected list")
    return report


def write_rescrape_tasks(tasks: List[RescrapeTask], path: PathLike) -> int:
    """Write the re-scrape task list for the scraping operators."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, **EXPORT_DIALECT)
        writer.writerow(["unit", "reason", "shard"])
        for task in tasks:
            writer.writerow([task.unit or "", task.reason.value, task.shard or ""])
    logger.info(f"Wrote {len(tasks)} re-scrape tasks to {path}")
    return len(tasks)
