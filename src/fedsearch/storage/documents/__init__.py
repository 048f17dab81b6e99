from .base import Document, DocumentStore
from .sql import SqlDocumentStore, compile_criteria

__all__ = ["Document", "DocumentStore", "SqlDocumentStore", "compile_criteria"]
