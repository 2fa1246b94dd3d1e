import re
from typing import Any, Mapping, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from listing_pipeline.models import RAW_COLUMNS
from listing_pipeline.parsing import is_blank

_WHITESPACE = re.compile(r"\s+")


def _null_to_none(value: Any) -> Any:
    # NaN and None group together, as in SQL GROUP BY
    if value is None or (isinstance(value, float) and value != value):
        return None
    return value


def _normalize_key_value(value: Any) -> Any:
    if isinstance(value, str) and not is_blank(value):
        return _WHITESPACE.sub(" ", value).strip().casefold()
    return value


def identity_key(row: Mapping[str, Any], normalize_fields: bool = False) -> Tuple[Any, ...]:
    """
    The full fifteen-field tuple that identifies a raw record.

    With `normalize_fields`, text is whitespace-collapsed, trimmed and
    case-folded before it becomes part of the key.
    """
    values = (_null_to_none(row.get(col)) for col in RAW_COLUMNS)
    if normalize_fields:
        return tuple(_normalize_key_value(v) for v in values)
    return tuple(values)


def _key_frame(frame: pd.DataFrame, normalize_fields: bool) -> pd.DataFrame:
    keys = frame[RAW_COLUMNS].reset_index(drop=True)
    if normalize_fields:
        keys = keys.apply(lambda col: col.map(_normalize_key_value))
    return keys


def find_duplicates(frame: pd.DataFrame, normalize_fields: bool = False) -> pd.DataFrame:
    """
    List every row that belongs to an identity group with more than one member.

    Equivalent to ROW_NUMBER() / COUNT(*) OVER (PARTITION BY all fifteen
    columns), keeping only the partitions with more than one row.

    Args:
        frame: Cumulative raw set.
        normalize_fields: Compare keys after trimming and case-folding text.

    Returns:
        pd.DataFrame: Duplicate rows with `rn` (1-based position within the
                      group) and `group_size` columns, grouped together in
                      order of first appearance.
    """
    keys = _key_frame(frame, normalize_fields)
    positions = keys.assign(_pos=np.arange(len(keys)))
    grouped = positions.groupby(RAW_COLUMNS, dropna=False, sort=False)["_pos"]

    audit = frame[RAW_COLUMNS].reset_index(drop=True)
    audit["rn"] = (grouped.cumcount() + 1).astype("int64")
    audit["group_size"] = grouped.transform("size").astype("int64")
    audit["_group"] = grouped.transform("min")

    audit = audit[audit["group_size"] > 1]
    audit = audit.sort_values(["_group", "rn"], kind="stable").drop(columns="_group")
    return audit.reset_index(drop=True)


def deduplicate(frame: pd.DataFrame, normalize_fields: bool = False) -> pd.DataFrame:
    """
    Collapse exact duplicates to their first occurrence.

    Nulls compare equal to nulls. With `normalize_fields` the comparison uses
    trimmed, case-folded text, but the kept representative is returned verbatim.

    Returns:
        pd.DataFrame: The distinct set, one row per identity tuple.
    """
    keep = ~_key_frame(frame, normalize_fields).duplicated(keep="first")
    distinct = frame[RAW_COLUMNS].reset_index(drop=True)[keep].reset_index(drop=True)
    logger.info(f"Deduplicated {len(frame)} raw rows to {len(distinct)} distinct rows")
    return distinct
