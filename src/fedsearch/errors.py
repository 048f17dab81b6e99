"""
Error taxonomy for fedsearch.

Configuration errors are fatal, transport resets and capacity errors are
recovered by the bulk indexer, a missing index is downgraded to an empty
result by the cursor, and everything else propagates unchanged.
"""

from typing import Any, Optional

import httpx

# 413 Payload Too Large, 408 Request Timeout
SPLITTABLE_STATUS_CODES = frozenset({413, 408})


class FedSearchError(Exception):
    """Base class for all fedsearch errors."""


class LocaleCollisionError(FedSearchError):
    """Two distinct locales sanitize to the same physical index name."""

    def __init__(self, locale: str, existing: str, index_name: str):
        self.locale = locale
        self.existing = existing
        self.index_name = index_name
        super().__init__(
            f"the locale names {locale} and {existing} cannot be distinguished "
            f"purely by their lowercased letters (both map to {index_name}); "
            "index names allow no other characters"
        )


class SearchBackendError(FedSearchError):
    """Non-success response from the search engine."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class IndexNotFoundError(SearchBackendError):
    """The requested index does not exist (yet)."""


class LockUnavailableError(FedSearchError):
    """A named lock is already held by someone else."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"lock {name} is already held")


def is_splittable_error(exc: BaseException) -> bool:
    """True for errors that suggest the request was too big to handle at once."""
    return getattr(exc, "status_code", None) in SPLITTABLE_STATUS_CODES


def is_connection_reset(exc: BaseException) -> bool:
    """True when the transport dropped the connection under us."""
    return isinstance(
        exc,
        (
            ConnectionResetError,
            httpx.RemoteProtocolError,
            httpx.ReadError,
            httpx.WriteError,
        ),
    )
