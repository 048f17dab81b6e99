"""
Search Storage modules for fedsearch (Full-Text Search).
"""
from typing import List, Dict, Any, Optional
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class SearchHits:
    """One page of search results: total hit count and ids in relevance order."""
    total: int = 0
    ids: List[str] = field(default_factory=list)


@dataclass
class BulkResponse:
    took: int = 0
    errors: bool = False
    items: List[Dict[str, Any]] = field(default_factory=list)


class SearchStore(ABC):
    """Abstract interface for full-text search engine operations."""

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connection."""
        pass

    @abstractmethod
    def clone(self) -> "SearchStore":
        """A fresh, unconnected store with the same configuration."""
        pass

    @abstractmethod
    async def ping(self, timeout: Optional[float] = None) -> bool:
        """Connectivity probe. Raises on failure."""
        pass

    @abstractmethod
    async def list_indexes(self) -> List[str]:
        """Names of all physical indexes."""
        pass

    @abstractmethod
    async def delete_indexes(self, names: List[str]) -> None:
        pass

    @abstractmethod
    async def create_index(self, name: str, body: Dict[str, Any]) -> None:
        """Create an index with the given settings and mappings."""
        pass

    @abstractmethod
    async def bulk(self, commands: List[Dict[str, Any]], refresh: bool = True) -> BulkResponse:
        """
        Submit a bulk write.

        Args:
            commands: Alternating action descriptions and document bodies
            refresh: Make the writes visible to search before returning
        """
        pass

    @abstractmethod
    async def search(
        self,
        index: str,
        body: Dict[str, Any],
        from_: int = 0,
        size: int = 50,
    ) -> SearchHits:
        """
        Run a query and return one page of hit ids.

        Raises:
            IndexNotFoundError: The index does not exist
        """
        pass

    @abstractmethod
    async def refresh(self, indexes: List[str]) -> None:
        """Make all preceding writes to the given indexes searchable."""
        pass
