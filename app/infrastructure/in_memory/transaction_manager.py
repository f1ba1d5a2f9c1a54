import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar

from app.application.interfaces.transaction_manager import TransactionManager
from app.infrastructure.in_memory._store import SnapshotStore

_in_unit_of_work: ContextVar[bool] = ContextVar("in_unit_of_work", default=False)


class InMemoryTransactionManager(TransactionManager):
    """
    Serializes units of work and restores every store on error, which gives
    the in-memory adapters the same all-or-nothing behaviour as a database
    transaction. Nested ``start()`` calls join the outer unit of work.
    """

    def __init__(self, *stores: SnapshotStore) -> None:
        self._stores = stores
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        if _in_unit_of_work.get():
            yield
            return

        async with self._lock:
            snapshots = [store.snapshot() for store in self._stores]
            token = _in_unit_of_work.set(True)
            try:
                yield
            except BaseException:
                for store, state in zip(self._stores, snapshots):
                    store.restore(state)
                raise
            finally:
                _in_unit_of_work.reset(token)
