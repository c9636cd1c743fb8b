"""Search package: reverse search index and query services."""

from .index_builder import SearchIndexBuilder
from .service import HttpSearchService, LocalSearchService

__all__ = ["SearchIndexBuilder", "HttpSearchService", "LocalSearchService"]
