"""Search index adapters for the Consultation service.

This module contains adapters that implement the SearchIndexPort interface for
mirroring consultations into a searchable index.
"""

from consultation_service.adapters.search.duckdb_search_index import DuckDBSearchIndex

__all__ = ["DuckDBSearchIndex"]
