"""
Typed data models for the listing consolidation pipeline.
All data structures used throughout the codebase should be defined here.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Set

import pandas as pd


# Fixed column order of every shard, staging buffer and export
RAW_COLUMNS = [
    "idsbr",
    "Query",
    "Actual Place Name",
    "Category",
    "Rating",
    "Address",
    "Phone Number",
    "Website",
    "Latitude",
    "Longitude",
    "Status",
    "Open Status",
    "Operation Hours",
    "Place",
    "Validasi",
]

LABEL_COLUMN = "Validasi"
QUERY_COLUMN = "Query"
PLACE_NAME_COLUMN = "Actual Place Name"
ID_COLUMN = "ids"


class ShardLoadError(RuntimeError):
    """Raised when a shard cannot be read or parsed at all."""


class ConfigError(ValueError):
    """Raised when pipeline configuration is invalid."""


class ValidationLabel(Enum):
    """Canonical two-valued validation label."""
    FOUND = "Ditemukan"
    NOT_FOUND = "Tidak Ditemukan"


class GeoCheck(Enum):
    """Result of the bounding-box containment check."""
    INSIDE = "inside"
    OUTSIDE = "outside"
    MISSING = "missing"


class Outcome(Enum):
    """Why a distinct record was accepted or excluded by validation."""
    ACCEPTED = "accepted"
    LABEL_NOT_FOUND = "label_not_found"
    LOW_SIMILARITY = "low_similarity"
    OUTSIDE_BOUNDS = "outside_bounds"
    MISSING_COORDINATES = "missing_coordinates"


class RescrapeReason(Enum):
    MISSING = "missing"
    INCOMPLETE = "incomplete"
    CORRUPT = "corrupt"


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive latitude/longitude rectangle of the target area."""
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float


@dataclass
class ShardIngestResult:
    """Outcome of ingesting one shard into the cumulative raw set."""
    shard: str
    rows_loaded: int = 0
    rows_merged: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ValidationOutcome:
    """Similarity and geo verdict for a single distinct record."""
    similarity: float
    geo_check: GeoCheck
    label: ValidationLabel
    outcome: Outcome

    @property
    def accepted(self) -> bool:
        return self.outcome is Outcome.ACCEPTED


@dataclass
class ValidationReport:
    """Validated view of the distinct set.

    `audit` holds every distinct row plus its similarity, geo_check and outcome
    columns; `accepted` holds only the rows that passed.
    """
    audit: pd.DataFrame
    accepted: pd.DataFrame

    def outcome_counts(self) -> Dict[str, int]:
        return {str(k): int(v) for k, v in self.audit["outcome"].value_counts().items()}


@dataclass
class FinalRecord:
    """Strongly typed, sequentially numbered output row."""
    ids: int
    idsbr: Optional[str] = None
    query: Optional[str] = None
    actual_place_name: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[Decimal] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    website: Optional[str] = None
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None
    status: Optional[str] = None
    open_status: Optional[str] = None
    operation_hours: Optional[str] = None
    place: Optional[str] = None
    validasi: ValidationLabel = ValidationLabel.FOUND

    def values(self) -> list:
        """Field values in RAW_COLUMNS order (without ids)."""
        return [
            self.idsbr,
            self.query,
            self.actual_place_name,
            self.category,
            self.rating,
            self.address,
            self.phone_number,
            self.website,
            self.latitude,
            self.longitude,
            self.status,
            self.open_status,
            self.operation_hours,
            self.place,
            self.validasi.value,
        ]


@dataclass
class PipelineResult:
    """Row counts and outputs of one consolidation run."""
    shard_results: List[ShardIngestResult]
    shards_merged: int
    raw_rows: int
    duplicate_rows: int
    distinct_rows: int
    accepted_rows: int
    records: List[FinalRecord]
    outputs: Dict[str, str] = field(default_factory=dict)

    @property
    def failed_shards(self) -> List[str]:
        return [r.shard for r in self.shard_results if not r.ok]


@dataclass
class RescrapeTask:
    """A unit (query) that the scraping workers must run again."""
    unit: Optional[str]
    reason: RescrapeReason
    shard: Optional[str] = None


@dataclass
class CompletenessReport:
    """Expected vs produced query units across a shard directory."""
    expected_units: Set[str]
    produced_units: Set[str]
    missing_units: Set[str]
    unexpected_units: Set[str] = field(default_factory=set)
    incomplete_shards: List[str] = field(default_factory=list)
    corrupt_shards: List[str] = field(default_factory=list)
    # unit -> shard, for units seen only in incomplete shards
    incomplete_units: Dict[str, str] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return not (self.missing_units or self.incomplete_shards or self.corrupt_shards)

    def rescrape_tasks(self) -> List[RescrapeTask]:
        """Re-scrape instructions scoped to missing and failed units only."""
        tasks = [RescrapeTask(unit=u, reason=RescrapeReason.MISSING) for u in sorted(self.missing_units)]
        tasks.extend(
            RescrapeTask(unit=u, reason=RescrapeReason.INCOMPLETE, shard=s)
            for u, s in sorted(self.incomplete_units.items())
        )
        tasks.extend(
            RescrapeTask(unit=None, reason=RescrapeReason.CORRUPT, shard=s) for s in self.corrupt_shards
        )
        return tasks
