from .base import SearchStore, SearchHits, BulkResponse
from .elasticsearch import ElasticsearchStore

__all__ = ["SearchStore", "SearchHits", "BulkResponse", "ElasticsearchStore"]
