"""
Locale Index Router

Maps locale identifiers to physical search index names. Index names are
restricted to lowercase letters, so a locale is rendered by lowercasing it
and dropping everything else. Two locales that render identically would write
into each other's index, which is a configuration error.
"""

import re
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from fedsearch.errors import LocaleCollisionError

DEFAULT_LOCALE = "default"
_NON_LETTERS = re.compile(r"[^a-z]")


class LocaleProvider(ABC):
    """The locale subsystem, as far as indexing is concerned."""

    @abstractmethod
    def active_locales(self) -> List[str]:
        """Ordered list of active locale identifiers."""
        ...


class StaticLocaleProvider(LocaleProvider):
    """Locales fixed at startup, usually from ``SEARCH_LOCALES``."""

    def __init__(self, locales: Sequence[str]):
        self._locales = list(dict.fromkeys(locales))

    def active_locales(self) -> List[str]:
        return list(self._locales)


class LocaleIndexRouter:
    """
    Deterministic locale -> index name mapping with collision detection.

    The collision table is append-only and shared by every caller in the
    process; the first locale seen for a name owns it.
    """

    def __init__(self, base_name: str, locale_provider: Optional[LocaleProvider] = None):
        self.doc_index = base_name.lower() + "docs"
        self.locale_provider = locale_provider
        self._names_seen: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def locales_enabled(self) -> bool:
        return self.locale_provider is not None

    def index_name_for(self, locale: str) -> str:
        """
        Physical index name for ``locale``.

        Raises:
            LocaleCollisionError: A different locale already maps to this name
        """
        locale = locale.lower()
        index_name = self.doc_index + _NON_LETTERS.sub("", locale)
        with self._lock:
            existing = self._names_seen.setdefault(index_name, locale)
        if existing != locale:
            raise LocaleCollisionError(locale, existing, index_name)
        return index_name

    def enumerate_locales(self) -> List[str]:
        if self.locale_provider is None:
            return [DEFAULT_LOCALE]
        return self.locale_provider.active_locales() or [DEFAULT_LOCALE]

    def index_names(self) -> List[str]:
        return [self.index_name_for(locale) for locale in self.enumerate_locales()]
