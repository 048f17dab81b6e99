"""
Search Context - process-wide state shared by the indexing and query paths.

Constructed once at startup and handed to every component: it owns the
settings, the locale router (and its collision table), the indexable field
set and the search engine handle, which ``reconnect`` replaces in place.
"""

import logging
from typing import Optional

from fedsearch.engine.locales import LocaleIndexRouter, LocaleProvider, StaticLocaleProvider
from fedsearch.engine.projector import FieldProjector, build_field_set
from fedsearch.engine.translator import QueryTranslator
from fedsearch.platform.config import Settings, settings as default_settings
from fedsearch.platform.logging import get_logger
from fedsearch.storage.search import ElasticsearchStore, SearchStore

logger = get_logger(__name__)


class SearchContext:

    def __init__(
        self,
        config: Optional[Settings] = None,
        search_store: Optional[SearchStore] = None,
        locale_provider: Optional[LocaleProvider] = None,
        verbose: Optional[bool] = None,
    ):
        """
        Args:
            config: Settings; the process-wide settings by default
            search_store: Search engine adapter; Elasticsearch by default
            locale_provider: Locale subsystem; built from SEARCH_LOCALES when
                omitted, absent (single "default" index) when that is empty
            verbose: Log reindex progress at info level
        """
        self.settings = config or default_settings
        self.search_store = search_store or ElasticsearchStore(self.settings)
        if locale_provider is None and self.settings.SEARCH_LOCALES:
            locale_provider = StaticLocaleProvider(self.settings.SEARCH_LOCALES)
        self.router = LocaleIndexRouter(self.settings.SEARCH_BASE_NAME, locale_provider)
        self.fields = build_field_set(self.settings.SEARCH_FIELDS, self.settings.SEARCH_ADD_FIELDS)
        self.projector = FieldProjector(self.fields)
        self.translator = QueryTranslator(
            self.fields,
            boosts=self.settings.SEARCH_BOOSTS,
            mode=self.settings.SEARCH_QUERY_MODE,
        )
        self.verbose_enabled = self.settings.SEARCH_VERBOSE if verbose is None else verbose

    async def connect(self) -> None:
        """Connect and probe the search engine with the short ping timeout."""
        await self.search_store.connect()
        await self.search_store.ping(timeout=self.settings.ELASTICSEARCH_PING_TIMEOUT)
        logger.info("search_engine_connected", base_index=self.router.doc_index)

    async def reconnect(self) -> None:
        """Replace the shared search handle with a fresh one of the same configuration."""
        old = self.search_store
        self.search_store = old.clone()
        await self.search_store.connect()
        try:
            await old.close()
        except Exception as e:
            # Operations still running on the old handle fail on their own
            logger.debug("stale_search_client_close_failed", error=str(e))

    async def close(self) -> None:
        await self.search_store.close()

    def verbose(self, message: str, **kwargs) -> None:
        level = logging.INFO if self.verbose_enabled else logging.DEBUG
        logger.log(level, message, **kwargs)
