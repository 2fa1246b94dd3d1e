import asyncio
from pathlib import Path
from typing import List, Sequence, Union

import pandas as pd
from loguru import logger

from listing_pipeline.config import BATCH_SIZE, POSITIVE_LABEL_TOKEN, SHARD_DELIMITER
from listing_pipeline.loader import StagingBuffer, describe_staging, empty_raw_frame, load_shard
from listing_pipeline.models import RAW_COLUMNS, ShardIngestResult, ShardLoadError
from listing_pipeline.normalizer import normalize_labels

PathLike = Union[str, Path]


class CumulativeRawSet:
    """Append-only union of every ingested shard."""

    def __init__(self):
        self._parts: List[pd.DataFrame] = []
        self._row_count = 0
        self.shards_merged = 0  # staging buffers merged, empty ones included

    @property
    def row_count(self) -> int:
        return self._row_count

    def append(self, frame: pd.DataFrame) -> int:
        if not frame.empty:
            self._parts.append(frame[RAW_COLUMNS].copy())
            self._row_count += len(frame)
        self.shards_merged += 1
        return len(frame)

    def frame(self) -> pd.DataFrame:
        """A copy of the full raw set as a single table."""
        if not self._parts:
            return empty_raw_frame()
        return pd.concat(self._parts, ignore_index=True)


def merge_staging(staging: StagingBuffer, raw_set: CumulativeRawSet) -> int:
    """
    Append every staged row onto the cumulative raw set, then clear staging.

    No deduplication or validation happens here; rows (nulls included) are
    carried over verbatim.

    Returns:
        int: Number of rows appended.
    """
    appended = raw_set.append(staging.frame)
    staging.clear()
    logger.debug(f"Merged {appended} rows; cumulative raw set now {raw_set.row_count} rows")
    return appended


def _stage_one(path: PathLike, delimiter: str) -> StagingBuffer:
    staging = StagingBuffer()
    load_shard(path, staging, delimiter=delimiter)
    return staging


async def ingest_shard(
    path: PathLike,
    raw_set: CumulativeRawSet,
    positive_token: str = POSITIVE_LABEL_TOKEN,
    delimiter: str = SHARD_DELIMITER,
) -> ShardIngestResult:
    """
    Load, normalize and merge a single shard.

    Ingestion-format errors are reported in the result instead of raised, so a
    bad shard never stops the shards after it.
    """
    results = await ingest_shards([path], raw_set, positive_token=positive_token, delimiter=delimiter)
    return results[0]


def batch_iter(paths: Sequence[PathLike], batch_size: int):
    """
    Yield index and path slices of size `batch_size` for batched loading.
    """
    n = len(paths)
    for i in range(0, n, batch_size):
        yield i, paths[i:i + batch_size]


async def ingest_shards(
    paths: Sequence[PathLike],
    raw_set: CumulativeRawSet,
    batch_size: int = BATCH_SIZE,
    positive_token: str = POSITIVE_LABEL_TOKEN,
    delimiter: str = SHARD_DELIMITER,
) -> List[ShardIngestResult]:
    """
    Ingest shards into the cumulative raw set.

    Shards within a batch are read in parallel, each into its own staging
    buffer. Buffers are then normalized and merged one at a time, in the order
    the paths were given, so the raw set only ever has a single writer.

    Args:
        paths: Shard files.
        raw_set: Cumulative raw set to append to.
        batch_size: Number of shards read concurrently.
        positive_token: Label token that normalizes to FOUND.
        delimiter: Shard field delimiter.

    Returns:
        List[ShardIngestResult]: One result per path, in input order.
    """
    results: List[ShardIngestResult] = []

    for start_idx, batch_paths in batch_iter(list(paths), max(batch_size, 1)):
        logger.info(f"Loading shards {start_idx}..{start_idx + len(batch_paths) - 1}")

        outcomes = await asyncio.gather(
            *[asyncio.to_thread(_stage_one, p, delimiter) for p in batch_paths],
            return_exceptions=True,
        )

        for path, outcome in zip(batch_paths, outcomes):
            result = ShardIngestResult(shard=str(path))
            if isinstance(outcome, ShardLoadError):
                logger.warning(f"Skipping shard {path}: {outcome}")
                result.error = str(outcome)
            elif isinstance(outcome, Exception):
                logger.error(f"Unexpected failure loading shard {path}: {outcome!r}")
                result.error = repr(outcome)
            else:
                result.rows_loaded = outcome.row_count
                describe_staging(outcome)
                normalize_labels(outcome, positive_token=positive_token)
                result.rows_merged = merge_staging(outcome, raw_set)
                logger.info(f"Ingested {result.rows_merged} rows from {Path(path).name}")
            results.append(result)

    return results
