"""Search index synchronisation."""

from .indexer import ElasticIndexer, SearchIndexError, build_index_mapping, build_post_document
from .rebuild import DEFAULT_PAGE_SIZE, SearchSink, rebuild_all

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "ElasticIndexer",
    "SearchIndexError",
    "SearchSink",
    "build_index_mapping",
    "build_post_document",
    "rebuild_all",
]
