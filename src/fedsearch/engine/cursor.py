"""
Federated Cursor - the read path.

A cursor without free text runs entirely against the primary store. Once
``search`` or ``autocomplete`` sets a search state, execution pages through
search hits in relevance order and reconciles each page against the primary
store, which re-applies the full criteria (permissions, workflow, type) and
supplies the fields the index does not carry.
"""

import copy
import json
import math
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from fedsearch.criteria import Criteria, In, and_, discover_equality_filters
from fedsearch.engine.context import SearchContext
from fedsearch.engine.locales import DEFAULT_LOCALE
from fedsearch.engine.projector import ID_FIELD
from fedsearch.engine.translator import SearchState, safe_query
from fedsearch.errors import IndexNotFoundError
from fedsearch.platform.logging import get_logger
from fedsearch.storage.documents import Document, DocumentStore

logger = get_logger(__name__)

DistinctCounts = Dict[Any, int]


def order_by_ids(ids: Sequence[str], documents: List[Document]) -> List[Document]:
    """``documents`` reordered to follow ``ids``; ids without a document are dropped."""
    by_id = {str(document[ID_FIELD]): document for document in documents}
    return [by_id[i] for i in ids if i in by_id]


def window(documents: List[Document], skip: Optional[int], limit: Optional[int]) -> List[Document]:
    if skip:
        documents = documents[skip:]
    if limit is not None:
        documents = documents[:limit]
    return documents


def _distinct_key(value: Any) -> Any:
    # Objects and nested arrays are compared by their canonical JSON form
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    return value


def tally(documents: List[Document], field: str) -> Tuple[List[Any], DistinctCounts]:
    """
    Distinct values of ``field`` in first-seen order and their occurrence counts.

    Object values are kept as first seen in the value list; in the counts
    mapping they are keyed by their canonical JSON string.
    """
    values: Dict[Any, Any] = {}
    counts: DistinctCounts = {}
    for document in documents:
        value = document.get(field)
        for v in value if isinstance(value, list) else [value]:
            key = _distinct_key(v)
            values.setdefault(key, v)
            counts[key] = counts.get(key, 0) + 1
    return list(values.values()), counts


class QueryCapabilities(Protocol):
    async def execute(
        self,
        projection: Optional[Sequence[str]],
        skip: Optional[int],
        limit: Optional[int],
    ) -> List[Document]: ...

    async def count(self) -> int: ...

    async def distinct(self, field: str) -> Tuple[List[Any], DistinctCounts]: ...


class PassthroughQuery:
    """Native primary-store behavior, used when no search state is set."""

    def __init__(self, store: DocumentStore, criteria: Optional[Criteria]):
        self.store = store
        self.criteria = criteria

    async def execute(self, projection, skip, limit) -> List[Document]:
        return await self.store.find(self.criteria, projection, skip=skip or 0, limit=limit)

    async def count(self) -> int:
        return await self.store.count(self.criteria)

    async def distinct(self, field: str) -> Tuple[List[Any], DistinctCounts]:
        return tally(await self.store.find(self.criteria, projection=[field]), field)


class FederatedQuery:
    """Search engine for relevance and candidates, primary store for truth."""

    def __init__(
        self,
        context: SearchContext,
        store: DocumentStore,
        state: SearchState,
        criteria: Optional[Criteria],
        locale: Optional[str],
    ):
        self.context = context
        self.store = store
        self.state = state
        self.criteria = criteria
        self.locale = locale

    def index_name(self) -> str:
        router = self.context.router
        if not router.locales_enabled:
            return router.index_name_for(DEFAULT_LOCALE)
        return router.index_name_for(self.locale or router.enumerate_locales()[0])

    async def execute(self, projection, skip, limit) -> List[Document]:
        """
        Page through hits until the search engine runs dry or ``skip + limit``
        reconciled documents are buffered, then apply the window.
        """
        index = self.index_name()
        body = self.context.translator.translate(
            self.state,
            discover_equality_filters(self.criteria),
        )
        page_size = self.context.settings.SEARCH_PAGE_SIZE
        wanted = (skip or 0) + limit if limit is not None else None
        documents: List[Document] = []
        offset = 0

        while True:
            try:
                hits = await self.context.search_store.search(index, body, from_=offset, size=page_size)
            except IndexNotFoundError:
                logger.warning(
                    "no indexed documents yet, run the reindex task once",
                    index=index,
                )
                return []
            if not hits.total or not hits.ids:
                break

            # A page that ends before ``skip`` only needs to be counted
            skip_only = skip is not None and len(documents) + len(hits.ids) <= skip
            results = await self.store.find(
                and_(In(ID_FIELD, hits.ids), self.criteria),
                [ID_FIELD] if skip_only else projection,
            )
            documents.extend(order_by_ids(hits.ids, results))

            if wanted is not None and len(documents) >= wanted:
                break
            offset += page_size
            if len(hits.ids) < page_size or offset >= hits.total:
                break

        return window(documents, skip, limit)

    async def count(self) -> int:
        return len(await self.execute([ID_FIELD], None, None))

    async def distinct(self, field: str) -> Tuple[List[Any], DistinctCounts]:
        return tally(await self.execute([field], None, None), field)


class Cursor:
    """
    Chainable query over the primary store with optional free-text search.

    Example::

        docs = await Cursor(context, store, Eq("type", "product")).search("calligraphy").skip(10).limit(5).to_array()
    """

    def __init__(
        self,
        context: SearchContext,
        store: DocumentStore,
        criteria: Optional[Criteria] = None,
        locale: Optional[str] = None,
    ):
        self.context = context
        self.store = store
        self._criteria = criteria
        self._locale = locale
        self._search: Optional[SearchState] = None
        self._skip: Optional[int] = None
        self._limit: Optional[int] = None
        self._projection: Optional[List[str]] = None
        self._per_page: Optional[int] = None
        self._page: Optional[int] = None
        self._count_distinct = False
        self._distinct_counts: Optional[DistinctCounts] = None
        self._total_pages: Optional[int] = None

    # --- filters ---

    def search(self, text: Any = None) -> "Cursor":
        """Full-text search; an empty or missing value turns searching off."""
        return self._set_search(text, autocomplete=False)

    def autocomplete(self, text: Any = None) -> "Cursor":
        """Phrase-prefix search for partial input; empty turns searching off."""
        return self._set_search(text, autocomplete=True)

    def _set_search(self, text: Any, autocomplete: bool) -> "Cursor":
        query = safe_query(text)
        self._search = SearchState(query, autocomplete) if query else None
        return self

    def criteria(self, criteria: Criteria) -> "Cursor":
        self._criteria = and_(self._criteria, criteria)
        return self

    def skip(self, n: Optional[int]) -> "Cursor":
        self._skip = n
        return self

    def limit(self, n: Optional[int]) -> "Cursor":
        self._limit = n
        return self

    def projection(self, fields: Optional[Sequence[str]]) -> "Cursor":
        self._projection = list(fields) if fields is not None else None
        return self

    def per_page(self, n: Optional[int]) -> "Cursor":
        self._per_page = n
        return self

    def page(self, n: Optional[int]) -> "Cursor":
        self._page = n
        return self

    def distinct_counts(self, enabled: bool = True) -> "Cursor":
        self._count_distinct = enabled
        return self

    # --- state ---

    @property
    def search_state(self) -> Optional[SearchState]:
        return self._search

    @property
    def total_pages(self) -> Optional[int]:
        return self._total_pages

    def get_distinct_counts(self) -> Optional[DistinctCounts]:
        return self._distinct_counts

    def clone(self) -> "Cursor":
        return copy.copy(self)

    def _query(self) -> QueryCapabilities:
        if self._search is None:
            return PassthroughQuery(self.store, self._criteria)
        return FederatedQuery(self.context, self.store, self._search, self._criteria, self._locale)

    def _window(self) -> Tuple[Optional[int], Optional[int]]:
        if self._per_page:
            return ((self._page or 1) - 1) * self._per_page, self._per_page
        return self._skip, self._limit

    # --- terminal operations ---

    async def to_array(self) -> List[Document]:
        skip, limit = self._window()
        return await self._query().execute(self._projection, skip, limit)

    async def to_object(self) -> Optional[Document]:
        documents = await self.clone().limit(1).to_array()
        return documents[0] if documents else None

    async def to_count(self) -> int:
        """Number of matching documents, ignoring skip, limit and paging."""
        count = await self._query().count()
        if self._per_page:
            self._total_pages = math.ceil(count / self._per_page)
        return count

    async def to_distinct(self, field: str) -> List[Any]:
        """
        Distinct values of ``field`` over all matches, array values flattened.

        With ``distinct_counts()`` enabled the value -> occurrence mapping is
        kept for ``get_distinct_counts()``.
        """
        values, counts = await self._query().distinct(field)
        if self._count_distinct:
            self._distinct_counts = counts
        return values
