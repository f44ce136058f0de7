from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.core.errors import StoreFault

T = TypeVar("T")


class BaseStore:
    """Runs session calls under a timeout and maps driver errors to StoreFault."""

    def __init__(self, session: AsyncSession, timeout_seconds: float = 10.0) -> None:
        self.session = session
        self.timeout_seconds = timeout_seconds

    async def _guard(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise StoreFault("Database call timed out") from exc
        except SQLAlchemyError as exc:
            raise StoreFault(f"Database error: {exc.__class__.__name__}") from exc

    async def flush(self) -> None:
        await self._guard(self.session.flush())

    async def commit(self) -> None:
        await self._guard(self.session.commit())

    async def rollback(self) -> None:
        await self._guard(self.session.rollback())
