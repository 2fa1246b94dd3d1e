from typing import Callable, Dict, Optional

from rapidfuzz import fuzz

from listing_pipeline.config import SIMILARITY_METRIC
from listing_pipeline.models import ConfigError
from listing_pipeline.parsing import is_blank

METRICS: Dict[str, Callable[..., float]] = {
    "ratio": fuzz.ratio,
    "partial_ratio": fuzz.partial_ratio,
    "token_sort_ratio": fuzz.token_sort_ratio,
    "token_set_ratio": fuzz.token_set_ratio,
    "WRatio": fuzz.WRatio,
}


def resolve_metric(name: str) -> Callable[..., float]:
    try:
        return METRICS[name]
    except KeyError:
        raise ConfigError(f"Unknown similarity metric '{name}'; expected one of {sorted(METRICS)}") from None


def check_threshold(threshold: float) -> float:
    if not 0.0 <= threshold <= 1.0:
        raise ConfigError(f"Similarity threshold must be within [0, 1], got {threshold}")
    return threshold


def similarity_score(query: Optional[str], place_name: Optional[str], metric: str = SIMILARITY_METRIC) -> float:
    """
    Score how closely a scraped place name matches the query it was scraped for.

    Args:
        query (str): The input query, usually the registered business name.
        place_name (str): Name of the place returned by the scraper.
        metric (str): rapidfuzz scorer name (see METRICS).

    Returns:
        float: Similarity in [0, 1]; 0.0 when either side is missing.
    """
    scorer = resolve_metric(metric)
    if is_blank(query) or is_blank(place_name):
        return 0.0
    return scorer(str(query).strip().lower(), str(place_name).strip().lower()) / 100.0

