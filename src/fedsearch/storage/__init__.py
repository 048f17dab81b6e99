"""fedsearch Storage Layer - primary document store (SQLAlchemy), locks and the search engine adapter."""

from .database import Database, DatabaseConfig
from .locks import SqlLockManager
from .models import Base, DocumentModel, LockModel

__all__ = [
    "Database",
    "DatabaseConfig",
    "SqlLockManager",
    "Base",
    "DocumentModel",
    "LockModel",
]
