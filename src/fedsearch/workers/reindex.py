"""
fedsearch Reindex Task

Drops, recreates and refills every locale search index from the primary
document store. You should only need this once under normal conditions, or
after changing the indexable fields or index settings.

Usage:
    python -m fedsearch.workers.reindex [--verbose]
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from fedsearch.engine.context import SearchContext
from fedsearch.engine.lifecycle import IndexLifecycleManager
from fedsearch.errors import FedSearchError
from fedsearch.platform.logging import configure_logging, get_logger
from fedsearch.storage.database import Database, DatabaseConfig
from fedsearch.storage.documents import SqlDocumentStore
from fedsearch.storage.locks import SqlLockManager

logger = get_logger(__name__)


async def run_reindex(verbose: bool = False, database: Optional[Database] = None) -> None:
    """Connect to both stores and run the full reindex pipeline."""
    if database is None:
        database = Database(DatabaseConfig())
        database.connect()
        database.create_tables()

    context = SearchContext(verbose=verbose or None)
    try:
        await context.connect()
        manager = IndexLifecycleManager(
            context,
            SqlDocumentStore(database),
            SqlLockManager(database),
        )
        await manager.reindex()
    finally:
        await context.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Rebuild all fedsearch indexes")
    parser.add_argument("--verbose", action="store_true", help="log progress while indexing")
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose)
    try:
        asyncio.run(run_reindex(verbose=args.verbose))
    except FedSearchError as e:
        logger.error("reindex_failed", error=str(e))
        return 1
    except Exception as e:
        logger.exception("reindex_failed", error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
