from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from loguru import logger

from listing_pipeline.config import (
    BATCH_SIZE,
    DUPLICATES_REPORT_NAME,
    FIELD_MAX_LENGTHS,
    FULL_EXPORT_NAME,
    OUTPUT_DIR,
    POSITIVE_LABEL_TOKEN,
    PUBLIC_EXPORT_NAME,
    SHARD_DELIMITER,
    SIMILARITY_METRIC,
    SIMILARITY_THRESHOLD,
    VALIDATION_REPORT_NAME,
)
from listing_pipeline.deduplicator import deduplicate, find_duplicates
from listing_pipeline.finalizer import export_final, export_frame, finalize
from listing_pipeline.merger import CumulativeRawSet, ingest_shards
from listing_pipeline.models import BoundingBox, PipelineResult
from listing_pipeline.validators import resolve_bounding_box, validate
from listing_pipeline.validators.similarity_validator import check_threshold, resolve_metric

PathLike = Union[str, Path]


async def run_pipeline(
    shard_paths: Sequence[PathLike],
    output_dir: PathLike = OUTPUT_DIR,
    bounding_box: Optional[BoundingBox] = None,
    threshold: float = SIMILARITY_THRESHOLD,
    metric: str = SIMILARITY_METRIC,
    positive_token: str = POSITIVE_LABEL_TOKEN,
    batch_size: int = BATCH_SIZE,
    delimiter: str = SHARD_DELIMITER,
    normalize_identity: bool = False,
    max_lengths: Dict[str, Optional[int]] = FIELD_MAX_LENGTHS,
) -> PipelineResult:
    """
    Run the consolidation pipeline end to end.

    Ingest every shard, collapse exact duplicates, validate the distinct set and
    export the typed final dataset. Deduplication only starts once all shards
    are merged, since duplicates can span shards.

    Args:
        shard_paths: Shard files produced by the scraping workers.
        output_dir: Directory for the exports and audit reports.
        bounding_box: Target area; resolved from config when None.
        threshold: Minimum name similarity in [0, 1].
        metric: rapidfuzz scorer name.
        positive_token: Raw label token meaning "found".
        batch_size: Number of shards read concurrently.
        delimiter: Shard field delimiter.
        normalize_identity: Trim and case-fold text before comparing identities.
        max_lengths: Maximum retained length per text column.

    Returns:
        PipelineResult: Counts, final records and output file paths.
    """
    # Fail on bad configuration before touching any shard
    check_threshold(threshold)
    resolve_metric(metric)
    if bounding_box is None:
        bounding_box = resolve_bounding_box()

    output_dir = Path(output_dir)
    outputs = {
        "full": str(output_dir / FULL_EXPORT_NAME),
        "public": str(output_dir / PUBLIC_EXPORT_NAME),
        "duplicates": str(output_dir / DUPLICATES_REPORT_NAME),
        "validation": str(output_dir / VALIDATION_REPORT_NAME),
    }

    # 1) Load, normalize and merge every shard
    raw_set = CumulativeRawSet()
    shard_results = await ingest_shards(
        shard_paths, raw_set, batch_size=batch_size, positive_token=positive_token, delimiter=delimiter
    )
    raw = raw_set.frame()

    # 2) Duplicate audit, then the distinct set
    duplicates = find_duplicates(raw, normalize_fields=normalize_identity)
    export_frame(duplicates, outputs["duplicates"])
    distinct = deduplicate(raw, normalize_fields=normalize_identity)

    # 3) Similarity and geo validation
    report = validate(distinct, bounding_box=bounding_box, threshold=threshold, metric=metric)
    export_frame(report.audit, outputs["validation"])

    # 4) Typed final dataset
    records = finalize(report.accepted, max_lengths=max_lengths)
    export_final(records, outputs["full"], outputs["public"])

    result = PipelineResult(
        shard_results=shard_results,
        shards_merged=raw_set.shards_merged,
        raw_rows=raw_set.row_count,
        duplicate_rows=len(duplicates),
        distinct_rows=len(distinct),
        accepted_rows=len(report.accepted),
        records=records,
        outputs=outputs,
    )
    if result.failed_shards:
        logger.warning(f"{len(result.failed_shards)} shards failed to load; run the completeness check")
    logger.info(
        f"Pipeline done: {result.shards_merged}/{len(shard_results)} shards merged, "
        f"{result.raw_rows} raw, {result.distinct_rows} distinct, {len(records)} final records"
    )
    return result
