"""
Index Lifecycle Manager - full reindex of the corpus.

Drop, create, index and refresh run strictly in order under a named lock.
A failed run leaves the indexes dropped or partially filled; running the
task again starts over from the drop, so it is always safe to retry.
"""

import copy
import math
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from fedsearch.criteria import Criteria, Eq, Or
from fedsearch.engine.context import SearchContext
from fedsearch.engine.indexer import BulkIndexer
from fedsearch.engine.projector import exact_field
from fedsearch.storage.documents import DocumentStore
from fedsearch.storage.locks import SqlLockManager

REINDEX_LOCK = "fedsearch-reindex"
_DRAFT_SUFFIX = re.compile(r"-draft$")


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``source`` into ``target`` recursively; source wins on conflicts."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def format_remaining(seconds: float) -> str:
    minutes = int(seconds // 60)
    hours = minutes // 60
    return f"{hours}h{minutes - hours * 60}m"


@dataclass
class ReindexProgress:
    locale: str
    indexed: int
    total: int
    locale_number: int
    locale_count: int
    portion: float
    remaining_seconds: float

    @property
    def percent(self) -> float:
        return math.floor(self.portion * 100 * 100) / 100

    def describe(self) -> str:
        return (
            f"{self.locale}: indexed {self.indexed} of {self.total}, "
            f"locale {self.locale_number} of {self.locale_count} "
            f"({self.percent}%) ({format_remaining(self.remaining_seconds)} remaining)"
        )


ProgressCallback = Callable[[ReindexProgress], None]


class IndexLifecycleManager:

    def __init__(
        self,
        context: SearchContext,
        document_store: DocumentStore,
        lock_manager: SqlLockManager,
        indexer: Optional[BulkIndexer] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        self.context = context
        self.document_store = document_store
        self.lock_manager = lock_manager
        self.indexer = indexer or BulkIndexer(context)
        self.progress = progress

    async def reindex(self) -> None:
        """
        Drop, create, index and refresh every locale index.

        Raises:
            LockUnavailableError: Another reindex is already running
        """
        self.context.verbose("reindex task launched")
        async with self.lock_manager.with_lock(REINDEX_LOCK):
            await self.drop_all()
            await self.create_all()
            await self.index_all()
            await self.refresh_all()
        self.context.verbose("reindex complete")

    async def drop_all(self) -> None:
        self.context.verbose("dropping indexes")
        prefix = self.context.router.doc_index
        indexes = [
            name for name in await self.context.search_store.list_indexes()
            if name.startswith(prefix)
        ]
        if not indexes:
            return
        await self.context.search_store.delete_indexes(indexes)

    def mapping(self) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        for field in self.context.fields:
            properties[field] = {"type": "text"}
            properties[exact_field(field)] = {"type": "keyword"}
        return {"properties": properties}

    def locale_settings(self, locale: str) -> Dict[str, Any]:
        """Global settings, global analyzer, locale settings, locale analyzer; later wins."""
        config = self.context.settings
        # Draft and published variants of a locale share their configuration
        locale = _DRAFT_SUFFIX.sub("", locale)
        settings: Dict[str, Any] = {}
        deep_merge(settings, config.SEARCH_INDEX_SETTINGS)
        if config.SEARCH_ANALYZER:
            deep_merge(settings, {"analysis": {"analyzer": config.SEARCH_ANALYZER}})
        deep_merge(settings, config.SEARCH_LOCALE_INDEX_SETTINGS.get(locale, {}))
        if config.SEARCH_ANALYZERS.get(locale):
            deep_merge(settings, {"analysis": {"analyzer": config.SEARCH_ANALYZERS[locale]}})
        return settings

    async def create_all(self) -> None:
        self.context.verbose("creating indexes")
        mapping = self.mapping()
        for locale in self.context.router.enumerate_locales():
            await self.context.search_store.create_index(
                self.context.router.index_name_for(locale),
                {"settings": self.locale_settings(locale), "mappings": mapping},
            )

    def _locale_criteria(self, locale: str) -> Optional[Criteria]:
        if not self.context.router.locales_enabled:
            return None
        # Documents with no locale must be indexed with every locale
        return Or(Eq("locale", locale), Eq("locale", None))

    async def index_all(self) -> None:
        self.context.verbose("indexing all documents")
        batch_size = self.context.settings.SEARCH_BATCH_SIZE
        locales = self.context.router.enumerate_locales()
        start = time.monotonic()

        for completed, locale in enumerate(locales):
            criteria = self._locale_criteria(locale)
            self.context.verbose(f"{locale}: counting docs for progress display")
            total = await self.document_store.count(criteria)
            indexed = 0
            last: Optional[str] = None

            while True:
                documents = await self.document_store.find_after(last, criteria, limit=batch_size)
                if not documents:
                    break
                last = documents[-1]["id"]
                indexed += len(documents)
                self._report(locale, indexed, total, completed, len(locales), start)
                await self.indexer.index_documents(
                    documents,
                    defer_refresh=True,
                    effective_locale=locale,
                )

    def _report(
        self,
        locale: str,
        indexed: int,
        total: int,
        completed: int,
        locale_count: int,
        start: float,
    ) -> None:
        portion = (completed / locale_count) + (indexed / max(total, 1)) * (1 / locale_count)
        elapsed = time.monotonic() - start
        remaining = (elapsed / portion) - elapsed if portion else 0.0
        report = ReindexProgress(
            locale=locale,
            indexed=indexed,
            total=total,
            locale_number=completed + 1,
            locale_count=locale_count,
            portion=portion,
            remaining_seconds=max(remaining, 0.0),
        )
        self.context.verbose(report.describe())
        if self.progress:
            self.progress(report)

    async def refresh_all(self) -> None:
        """One refresh across every locale index so deferred writes become searchable."""
        self.context.verbose("refreshing")
        await self.context.search_store.refresh(self.context.router.index_names())
