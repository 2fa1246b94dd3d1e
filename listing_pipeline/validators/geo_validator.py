from typing import Any, Optional

from loguru import logger

from listing_pipeline import config
from listing_pipeline.models import BoundingBox, ConfigError, GeoCheck
from listing_pipeline.parsing import parse_float


def make_bounding_box(lat_min: float, lat_max: float, lon_min: float, lon_max: float) -> BoundingBox:
    """Build a bounding box, rejecting inverted or out-of-range corners."""
    if not (-90.0 <= lat_min <= lat_max <= 90.0):
        raise ConfigError(f"Invalid latitude range [{lat_min}, {lat_max}]")
    if not (-180.0 <= lon_min <= lon_max <= 180.0):
        raise ConfigError(f"Invalid longitude range [{lon_min}, {lon_max}]")
    return BoundingBox(lat_min=lat_min, lat_max=lat_max, lon_min=lon_min, lon_max=lon_max)


def parse_bounding_box(text: str) -> BoundingBox:
    """Parse "lat_min,lat_max,lon_min,lon_max"."""
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 4:
        raise ConfigError(f"Bounding box needs four comma-separated numbers, got '{text}'")
    try:
        lat_min, lat_max, lon_min, lon_max = (float(p) for p in parts)
    except ValueError:
        raise ConfigError(f"Bounding box values must be numeric, got '{text}'") from None
    return make_bounding_box(lat_min, lat_max, lon_min, lon_max)


def resolve_bounding_box(city: Optional[str] = None, override: Optional[str] = None) -> BoundingBox:
    """
    Resolve the bounding box of the target area.

    Precedence: an explicit override, then an explicit city, then the
    BOUNDING_BOX setting, then the TARGET_CITY setting.
    """
    if override is None and city is None:
        override = config.BOUNDING_BOX
        city = config.TARGET_CITY
    if override:
        bbox = parse_bounding_box(override)
        logger.debug(f"Using bounding box override {bbox}")
        return bbox
    try:
        corners = config.CITY_BOUNDING_BOXES[city.strip().lower()]
    except KeyError:
        raise ConfigError(
            f"No bounding box known for city '{city}'; set BOUNDING_BOX or use one of {sorted(config.CITY_BOUNDING_BOXES)}"
        ) from None
    return make_bounding_box(*corners)


def check_geo(latitude: Any, longitude: Any, bounding_box: BoundingBox) -> GeoCheck:
    """
    Check whether a coordinate pair falls inside the bounding box (inclusive).

    Total function: a missing or unparseable latitude or longitude is MISSING,
    never INSIDE.
    """
    lat = parse_float(latitude)
    lon = parse_float(longitude)
    if lat is None or lon is None:
        return GeoCheck.MISSING
    inside = (
        bounding_box.lat_min <= lat <= bounding_box.lat_max
        and bounding_box.lon_min <= lon <= bounding_box.lon_max
    )
    return GeoCheck.INSIDE if inside else GeoCheck.OUTSIDE
