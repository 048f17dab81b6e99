"""
Bulk Indexer - writes index records for documents into their locale indexes.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fedsearch.engine.context import SearchContext
from fedsearch.engine.locales import DEFAULT_LOCALE
from fedsearch.engine.projector import ID_FIELD
from fedsearch.errors import SearchBackendError, is_connection_reset, is_splittable_error
from fedsearch.platform.logging import get_logger
from fedsearch.storage.search import BulkResponse

logger = get_logger(__name__)

# Reconnect attempts allowed within one index_documents call
MAX_RECONNECTS = 5


@dataclass
class BulkResult:
    documents: int = 0
    requests: int = 0
    splits: int = 0
    reconnects: int = 0


class BulkIndexer:
    """
    Turns documents into bulk index commands and submits them.

    Oversized batches are bisected until they go through or a single document
    still fails, connection resets are retried on a fresh client.
    """

    def __init__(self, context: SearchContext):
        self.context = context

    def target_locales(self, document: Dict[str, Any], effective_locale: Optional[str] = None) -> List[str]:
        router = self.context.router
        if not router.locales_enabled:
            return [DEFAULT_LOCALE]
        locale = effective_locale or document.get("locale")
        if locale:
            return [locale]
        # Not locale specific, so must appear in all locale indexes
        return router.enumerate_locales()

    def commands_for_document(
        self,
        document: Dict[str, Any],
        effective_locale: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """One action/body pair per target locale index."""
        body = self.context.projector.project(document)
        commands: List[Dict[str, Any]] = []
        for locale in self.target_locales(document, effective_locale):
            commands.append({
                "index": {
                    "_index": self.context.router.index_name_for(locale),
                    "_id": str(document[ID_FIELD]),
                }
            })
            commands.append(body)
        return commands

    async def index_document(self, document: Dict[str, Any], defer_refresh: bool = False) -> BulkResult:
        """Index one saved document; usable as a document store after-save hook."""
        return await self.index_documents([document], defer_refresh=defer_refresh)

    async def index_documents(
        self,
        documents: Sequence[Dict[str, Any]],
        defer_refresh: bool = False,
        effective_locale: Optional[str] = None,
    ) -> BulkResult:
        """
        Index ``documents`` with as few bulk requests as the backend allows.

        Args:
            documents: Documents to index
            defer_refresh: Don't make the writes searchable yet; the caller
                refreshes once at the end
            effective_locale: Route every document to this locale's index

        Raises:
            SearchBackendError: Any error that neither a reconnect nor a
                split can fix, including a single document that is still
                too big
        """
        result = BulkResult(documents=len(documents))
        # Stack of [start, end) ranges, the first half of a split goes on top
        pending: List[Tuple[int, int]] = [(0, len(documents))] if documents else []

        while pending:
            start, end = pending.pop()
            batch = documents[start:end]
            commands = [
                command
                for document in batch
                for command in self.commands_for_document(document, effective_locale)
            ]
            try:
                result.requests += 1
                response = await self.context.search_store.bulk(commands, refresh=not defer_refresh)
                self._raise_for_items(response)
            except Exception as e:
                if is_connection_reset(e) and result.reconnects < MAX_RECONNECTS:
                    self.context.verbose("connection reset, trying a new connection")
                    await self.context.reconnect()
                    result.reconnects += 1
                    pending.append((start, end))
                    continue
                if is_splittable_error(e) and len(batch) > 1:
                    self.context.verbose(
                        f"{e.status_code} suggests too big, splitting up this batch, "
                        "if you see this a lot reduce the batch size",
                        batch=len(batch),
                    )
                    pivot = start + len(batch) // 2
                    result.splits += 1
                    pending.append((pivot, end))
                    pending.append((start, pivot))
                    continue
                logger.error("bulk_index_failed", documents=len(batch), error=str(e))
                raise

        return result

    @staticmethod
    def _raise_for_items(response: BulkResponse) -> None:
        if not response.errors:
            return
        for item in response.items:
            outcome = next(iter(item.values()), {})
            if outcome.get("error"):
                raise SearchBackendError(
                    f"bulk item {outcome.get('_id')} failed: {outcome['error']}",
                    status_code=outcome.get("status"),
                    body=item,
                )
        raise SearchBackendError("bulk request reported errors", body=response.items)
