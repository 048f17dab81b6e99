import pytest

from fedsearch.errors import LockUnavailableError
from fedsearch.storage.locks import SqlLockManager


def test_second_acquire_fails_until_released(lock_manager):
    lock_manager.acquire("job")

    with pytest.raises(LockUnavailableError) as exc_info:
        lock_manager.acquire("job")
    assert exc_info.value.name == "job"

    lock_manager.release("job")
    lock_manager.acquire("job")


def test_locks_are_shared_through_the_database(database):
    SqlLockManager(database).acquire("job")
    with pytest.raises(LockUnavailableError):
        SqlLockManager(database).acquire("job")


def test_different_names_do_not_conflict(lock_manager):
    lock_manager.acquire("one")
    lock_manager.acquire("two")


@pytest.mark.asyncio
async def test_with_lock_releases_on_error(lock_manager):
    with pytest.raises(RuntimeError):
        async with lock_manager.with_lock("job"):
            with pytest.raises(LockUnavailableError):
                lock_manager.acquire("job")
            raise RuntimeError("boom")

    async with lock_manager.with_lock("job"):
        pass
