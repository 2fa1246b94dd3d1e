"""Similarity and geographic validation of distinct records."""
from listing_pipeline.validators.geo_validator import check_geo, resolve_bounding_box
from listing_pipeline.validators.similarity_validator import similarity_score
from listing_pipeline.validators.validation_orchestrator import validate, validate_record

__all__ = ["check_geo", "resolve_bounding_box", "similarity_score", "validate", "validate_record"]
