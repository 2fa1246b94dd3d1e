"""Consolidation and validation of scraped business listing shards."""
