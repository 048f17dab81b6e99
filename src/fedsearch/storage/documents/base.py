"""
Primary document store interface.

The federated cursor and the reindex pipeline consume the primary store only
through this interface: fetch by criteria with a projection, count, and
keyset pagination by identifier.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from fedsearch.criteria import Criteria, Gt, and_

Document = Dict[str, Any]


class DocumentStore(ABC):
    """Abstract interface for the authoritative document store."""

    @abstractmethod
    async def find(
        self,
        criteria: Optional[Criteria] = None,
        projection: Optional[Sequence[str]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """
        Fetch documents matching ``criteria`` in ascending identifier order.

        Args:
            criteria: Structured criteria; None matches everything
            projection: Field names to return (``id`` is always returned)
            skip: Number of matching documents to skip
            limit: Maximum number of documents to return
        """
        pass

    @abstractmethod
    async def count(self, criteria: Optional[Criteria] = None) -> int:
        pass

    async def find_after(
        self,
        last_id: Optional[str],
        criteria: Optional[Criteria] = None,
        limit: int = 1000,
    ) -> List[Document]:
        """Keyset pagination: the next ``limit`` documents with id > ``last_id``."""
        if last_id is not None:
            criteria = and_(criteria, Gt("id", last_id))
        return await self.find(criteria, limit=limit)
