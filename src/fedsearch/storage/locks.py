from contextlib import asynccontextmanager
from typing import AsyncIterator
import logging

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from fedsearch.errors import LockUnavailableError
from fedsearch.storage.database import Database
from fedsearch.storage.models import LockModel

logger = logging.getLogger(__name__)


class SqlLockManager:
    """
    Named, cluster-wide locks backed by a table with the lock name as
    primary key. Every process sharing the database sees the same locks.
    """

    def __init__(self, database: Database):
        self.database = database

    def acquire(self, name: str) -> None:
        """
        Take the lock or fail immediately.

        Raises:
            LockUnavailableError: Somebody else holds the lock
        """
        try:
            with self.database.get_session() as session:
                session.add(LockModel(name=name))
                session.flush()
        except IntegrityError as e:
            raise LockUnavailableError(name) from e
        logger.info(f"Acquired lock {name}")

    def release(self, name: str) -> None:
        with self.database.get_session() as session:
            session.execute(delete(LockModel).where(LockModel.name == name))
        logger.info(f"Released lock {name}")

    @asynccontextmanager
    async def with_lock(self, name: str) -> AsyncIterator[None]:
        self.acquire(name)
        try:
            yield
        finally:
            self.release(name)
