# listing_pipeline/validators/validation_orchestrator.py

from typing import Any, Mapping, Optional

import numpy as np
import pandas as pd
from loguru import logger

from listing_pipeline.config import SIMILARITY_METRIC, SIMILARITY_THRESHOLD
from listing_pipeline.models import (
    LABEL_COLUMN,
    PLACE_NAME_COLUMN,
    QUERY_COLUMN,
    BoundingBox,
    GeoCheck,
    Outcome,
    ValidationLabel,
    ValidationOutcome,
    ValidationReport,
)
from listing_pipeline.normalizer import canonical_label
from listing_pipeline.validators.geo_validator import check_geo, resolve_bounding_box
from listing_pipeline.validators.similarity_validator import (
    check_threshold,
    resolve_metric,
    similarity_score,
)


def validate_record(
    row: Mapping[str, Any],
    bounding_box: BoundingBox,
    threshold: float = SIMILARITY_THRESHOLD,
    metric: str = SIMILARITY_METRIC,
) -> ValidationOutcome:
    """
    Combine label, name similarity and geo containment into one verdict.

    A record is accepted only if its label is FOUND, its similarity reaches the
    threshold and its coordinates are inside the bounding box.

    Args:
        row: Distinct-set row keyed by raw column name.
        bounding_box: Target area.
        threshold: Minimum similarity in [0, 1].
        metric: rapidfuzz scorer name.

    Returns:
        ValidationOutcome: Scores plus the first failing reason, if any.
    """
    label = canonical_label(row.get(LABEL_COLUMN))
    score = similarity_score(row.get(QUERY_COLUMN), row.get(PLACE_NAME_COLUMN), metric=metric)
    geo = check_geo(row.get("Latitude"), row.get("Longitude"), bounding_box)

    if label is not ValidationLabel.FOUND:
        outcome = Outcome.LABEL_NOT_FOUND
    elif score < threshold:
        outcome = Outcome.LOW_SIMILARITY
    elif geo is GeoCheck.MISSING:
        outcome = Outcome.MISSING_COORDINATES
    elif geo is GeoCheck.OUTSIDE:
        outcome = Outcome.OUTSIDE_BOUNDS
    else:
        outcome = Outcome.ACCEPTED

    return ValidationOutcome(similarity=score, geo_check=geo, label=label, outcome=outcome)


def validate(
    distinct: pd.DataFrame,
    bounding_box: Optional[BoundingBox] = None,
    threshold: float = SIMILARITY_THRESHOLD,
    metric: str = SIMILARITY_METRIC,
) -> ValidationReport:
    """
    Validate every row of the distinct set.

    The distinct set itself is left untouched; excluded rows stay visible in the
    report's audit table.

    Args:
        distinct: Output of deduplicator.deduplicate.
        bounding_box: Target area; resolved from config when None.
        threshold: Minimum similarity in [0, 1].
        metric: rapidfuzz scorer name.

    Returns:
        ValidationReport: Audit table and accepted rows.
    """
    check_threshold(threshold)
    resolve_metric(metric)
    if bounding_box is None:
        bounding_box = resolve_bounding_box()

    outcomes = [
        validate_record(row, bounding_box, threshold=threshold, metric=metric)
        for row in distinct.to_dict("records")
    ]

    audit = distinct.copy()
    audit["similarity"] = [o.similarity for o in outcomes]
    audit["geo_check"] = [o.geo_check.value for o in outcomes]
    audit["outcome"] = [o.outcome.value for o in outcomes]

    mask = np.array([o.accepted for o in outcomes], dtype=bool)
    accepted = distinct[mask].reset_index(drop=True)

    report = ValidationReport(audit=audit, accepted=accepted)
    logger.info(f"Validated {len(distinct)} distinct rows: {len(accepted)} accepted, {report.outcome_counts()}")
    return report
