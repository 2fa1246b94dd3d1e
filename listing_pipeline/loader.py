"""
Shard loading into an untyped staging area.

Every value is kept as text exactly as it appears in the shard; data-quality
problems are left for the normalizer, validator and finalizer to deal with.
"""
import csv
import sys
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd
from loguru import logger

from listing_pipeline.config import SHARD_DELIMITER
from listing_pipeline.models import LABEL_COLUMN, RAW_COLUMNS, ShardLoadError

PathLike = Union[str, Path]

# Address and Operation Hours can exceed the csv module's default 128 KiB field limit
csv.field_size_limit(min(sys.maxsize, 2**31 - 1))


def empty_raw_frame() -> pd.DataFrame:
    """An empty table with the fifteen raw text columns."""
    return pd.DataFrame({col: pd.Series(dtype=object) for col in RAW_COLUMNS})


class StagingBuffer:
    """
    Staging area for a single shard.

    A buffer is owned by exactly one shard ingestion at a time and must be
    empty again (see merger.merge_staging) before it is reused.
    """

    def __init__(self):
        self._frame = empty_raw_frame()

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame

    @property
    def row_count(self) -> int:
        return len(self._frame)

    @property
    def is_empty(self) -> bool:
        return self._frame.empty

    def append(self, frame: pd.DataFrame) -> None:
        frame = frame[RAW_COLUMNS]
        if self._frame.empty:
            self._frame = frame.reset_index(drop=True).copy()
        else:
            self._frame = pd.concat([self._frame, frame], ignore_index=True)

    def clear(self) -> None:
        self._frame = empty_raw_frame()


def _fit_row(fields: List[str], width: int, delimiter: str) -> List[Optional[str]]:
    # Stray unquoted delimiters: fold the overflow back into the last column
    if len(fields) > width:
        return fields[: width - 1] + [delimiter.join(fields[width - 1:])]
    # Short rows: the missing trailing fields are null
    return fields + [None] * (width - len(fields))


def read_shard(path: PathLike, delimiter: str = SHARD_DELIMITER) -> pd.DataFrame:
    """
    Read one shard file as text, keeping every row.

    Args:
        path: Shard file (header row first, quoted with '"').
        delimiter: Field delimiter, ';' for the scraper output.

    Returns:
        pd.DataFrame: Rows in RAW_COLUMNS order. Values are the original strings;
                      columns missing from the shard are None.

    Raises:
        ShardLoadError: If the file is unreadable, not valid UTF-8, empty, or has
                        no recognisable header.
    """
    path = Path(path)
    header: List[str] = []
    rows: List[List[Optional[str]]] = []
    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f, delimiter=delimiter, quotechar='"')
            for fields in reader:
                if not fields:
                    continue
                if not header:
                    header = [col.strip() for col in fields]
                    continue
                rows.append(_fit_row(fields, len(header), delimiter))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise ShardLoadError(f"Unable to read shard {path}: {e}") from e

    if not header:
        raise ShardLoadError(f"Shard {path} is empty")
    if not any(col in RAW_COLUMNS for col in header):
        raise ShardLoadError(f"Shard {path} has no recognised header columns: {header}")

    extra = [col for col in header if col not in RAW_COLUMNS]
    if extra:
        logger.warning(f"Dropping unknown columns {extra} from {path.name}")

    frame = pd.DataFrame(rows, columns=header, dtype=object)
    # Keep the first of any repeated header name
    frame = frame.loc[:, ~frame.columns.duplicated()]
    for col in RAW_COLUMNS:
        if col not in frame.columns:
            frame[col] = None
    return frame[RAW_COLUMNS]


def load_shard(path: PathLike, staging: StagingBuffer, delimiter: str = SHARD_DELIMITER) -> int:
    """
    Load every row of one shard into a staging buffer.

    Args:
        path: Shard file to load.
        staging: Buffer owned by this shard's ingestion; expected to be empty.
        delimiter: Field delimiter.

    Returns:
        int: Number of rows staged.
    """
    if not staging.is_empty:
        logger.warning(f"Staging holds {staging.row_count} rows before loading {path}; rows will mix")
    frame = read_shard(path, delimiter=delimiter)
    staging.append(frame)
    logger.debug(f"Staged {len(frame)} rows from {Path(path).name}")
    return len(frame)


def describe_staging(staging: StagingBuffer) -> Dict[str, object]:
    """Row count and distinct raw labels currently staged, for inspection."""
    labels = staging.frame[LABEL_COLUMN].drop_duplicates().tolist()
    summary = {"total_row": staging.row_count, "labels": labels}
    logger.info(f"Staging: {summary['total_row']} rows, distinct labels: {labels!r}")
    return summary
