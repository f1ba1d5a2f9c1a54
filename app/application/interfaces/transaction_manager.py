from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol


class TransactionManager(Protocol):
    """One ``start()`` block is one unit of work: committed on exit, rolled back on error."""

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        yield
