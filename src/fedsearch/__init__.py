"""
fedsearch - Federated full-text search over a document store

This package keeps per-locale Elasticsearch indexes in sync with the primary
document store and federates free-text reads between the two:
- engine: locale routing, field projection, bulk indexing, reindex lifecycle,
  query translation and the federated cursor
- storage: document store, locks and search engine adapters
- workers: operator tasks (reindex)
- platform: Cross-cutting concerns (configuration, logging)
"""

__version__ = "0.1.0"
