import re
from typing import Any

from loguru import logger

from listing_pipeline.config import POSITIVE_LABEL_TOKEN
from listing_pipeline.loader import StagingBuffer
from listing_pipeline.models import LABEL_COLUMN, ValidationLabel

# Backslash escapes plus every C0/C1 control character (CR, LF, TAB, ...)
_STRAY_CHARS = re.compile(r"[\\\x00-\x1f\x7f-\x9f]")


def clean_label_text(raw: Any) -> str:
    """Strip escapes and control characters, trim and casefold a raw label."""
    if not isinstance(raw, str):
        return ""
    return _STRAY_CHARS.sub("", raw).strip().casefold()


def normalize_label(raw: Any, positive_token: str = POSITIVE_LABEL_TOKEN) -> ValidationLabel:
    """
    Map a free-text validation label to its canonical value.

    Total function: anything that is not the positive token after cleaning,
    including None, NaN and non-strings, is NOT_FOUND.

    Args:
        raw: Label as scraped, e.g. "ditemukan \\r\\n".
        positive_token: Token that means the place was found.

    Returns:
        ValidationLabel: FOUND or NOT_FOUND.
    """
    if clean_label_text(raw) == clean_label_text(positive_token):
        return ValidationLabel.FOUND
    return ValidationLabel.NOT_FOUND


def canonical_label(value: Any) -> ValidationLabel:
    """Read back an already-normalized label; anything else is NOT_FOUND."""
    if value == ValidationLabel.FOUND.value:
        return ValidationLabel.FOUND
    return ValidationLabel.NOT_FOUND


def normalize_labels(staging: StagingBuffer, positive_token: str = POSITIVE_LABEL_TOKEN) -> int:
    """
    Rewrite the staged label column in place with canonical label values.

    Returns:
        int: Number of rows labelled FOUND.
    """
    frame = staging.frame
    frame[LABEL_COLUMN] = [normalize_label(v, positive_token).value for v in frame[LABEL_COLUMN]]
    found = int((frame[LABEL_COLUMN] == ValidationLabel.FOUND.value).sum())
    logger.debug(f"Normalized {len(frame)} labels ({found} found)")
    return found
