"""
Typed finalization and export of validated records.

Rows are cast to the final schema one field at a time: a value that does not
parse becomes None for that field only and the row is still emitted.
"""
import csv
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd
from loguru import logger

from listing_pipeline.config import EXPORT_DIALECT, FIELD_MAX_LENGTHS
from listing_pipeline.models import ID_COLUMN, LABEL_COLUMN, RAW_COLUMNS, FinalRecord, ValidationLabel
from listing_pipeline.normalizer import canonical_label
from listing_pipeline.parsing import bounded_text, is_blank, parse_decimal

PathLike = Union[str, Path]

RATING_RANGE = (0, 5)
LATITUDE_RANGE = (-90, 90)
LONGITUDE_RANGE = (-180, 180)


def _decimal_field(row: Mapping[str, Any], column: str, places: int, bounds) -> Optional[Any]:
    raw = row.get(column)
    value = parse_decimal(raw, places=places, lower=bounds[0], upper=bounds[1])
    if value is None and not is_blank(raw):
        logger.debug(f"Nulling unparseable {column} value {raw!r} for idsbr={row.get('idsbr')}")
    return value


def _text_field(row: Mapping[str, Any], column: str, max_lengths: Dict[str, Optional[int]]) -> Optional[str]:
    raw = row.get(column)
    value = bounded_text(raw, max_lengths.get(column))
    if value is not None and len(value) < len(str(raw)):
        logger.debug(f"Truncated {column} to {len(value)} characters for idsbr={row.get('idsbr')}")
    return value


def to_final_record(
    row: Mapping[str, Any],
    ids: int,
    max_lengths: Dict[str, Optional[int]] = FIELD_MAX_LENGTHS,
) -> FinalRecord:
    """Cast one validated raw row to its typed representation."""
    return FinalRecord(
        ids=ids,
        idsbr=_text_field(row, "idsbr", max_lengths),
        query=_text_field(row, "Query", max_lengths),
        actual_place_name=_text_field(row, "Actual Place Name", max_lengths),
        category=_text_field(row, "Category", max_lengths),
        rating=_decimal_field(row, "Rating", 2, RATING_RANGE),
        address=_text_field(row, "Address", max_lengths),
        phone_number=_text_field(row, "Phone Number", max_lengths),
        website=_text_field(row, "Website", max_lengths),
        latitude=_decimal_field(row, "Latitude", 7, LATITUDE_RANGE),
        longitude=_decimal_field(row, "Longitude", 7, LONGITUDE_RANGE),
        status=_text_field(row, "Status", max_lengths),
        open_status=_text_field(row, "Open Status", max_lengths),
        operation_hours=_text_field(row, "Operation Hours", max_lengths),
        place=_text_field(row, "Place", max_lengths),
        validasi=canonical_label(row.get(LABEL_COLUMN)),
    )


def finalize(
    accepted: pd.DataFrame,
    max_lengths: Dict[str, Optional[int]] = FIELD_MAX_LENGTHS,
) -> List[FinalRecord]:
    """
    Build the final dataset from validated rows.

    Args:
        accepted: Rows accepted by the validator.
        max_lengths: Maximum retained length per text column.

    Returns:
        List[FinalRecord]: One record per FOUND row, with ids 1..N in row order.
    """
    records: List[FinalRecord] = []
    for row in accepted.to_dict("records"):
        if canonical_label(row.get(LABEL_COLUMN)) is not ValidationLabel.FOUND:
            logger.warning(f"Skipping row without a found label: idsbr={row.get('idsbr')}")
            continue
        records.append(to_final_record(row, ids=len(records) + 1, max_lengths=max_lengths))

    logger.info(f"Finalized {len(records)} records")
    return records


def _format(value: Any) -> Any:
    return "" if value is None else value


def _write_rows(path: Path, header: List[str], rows: Iterable[List[Any]]) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, **EXPORT_DIALECT)
        writer.writerow(header)
        for row in rows:
            writer.writerow([_format(v) for v in row])
            count += 1
    return count


def export_final(records: List[FinalRecord], full_path: PathLike, public_path: PathLike) -> None:
    """
    Write the traceable export (with ids) and the public export (without).

    Both files start with a header row naming every column.
    """
    full_path, public_path = Path(full_path), Path(public_path)
    written = _write_rows(full_path, [ID_COLUMN] + RAW_COLUMNS, ([r.ids] + r.values() for r in records))
    logger.info(f"Wrote {written} records to {full_path}")
    written = _write_rows(public_path, list(RAW_COLUMNS), (r.values() for r in records))
    logger.info(f"Wrote {written} records to {public_path}")


def export_frame(frame: pd.DataFrame, path: PathLike) -> None:
    """Write an audit table in the export dialect."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(
        path,
        sep=EXPORT_DIALECT["delimiter"],
        quotechar=EXPORT_DIALECT["quotechar"],
        quoting=EXPORT_DIALECT["quoting"],
        lineterminator=EXPORT_DIALECT["lineterminator"],
        index=False,
        encoding="utf-8",
    )
    logger.debug(f"Wrote {len(frame)} rows to {path}")
