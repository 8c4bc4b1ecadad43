from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, Sequence, TypeVar

import aiosqlite

T = TypeVar("T")


class SqliteStore(ABC, Generic[T]):
    """One table in the bot's SQLite file.

    Every call opens its own connection and commits before returning, so a
    row read back is always the committed one.
    """

    def __init__(self, sqlite_path: str) -> None:
        self._path = sqlite_path

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await self._create_tables(db)
            await db.commit()

    @abstractmethod
    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        ...

    @abstractmethod
    def _from_row(self, row: aiosqlite.Row) -> T:
        ...

    async def _fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[T]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cur:
                row = await cur.fetchone()
        return self._from_row(row) if row is not None else None

    async def _fetch_all(self, query: str, params: Sequence[Any] = ()) -> list[T]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cur:
                rows = await cur.fetchall()
        return [self._from_row(r) for r in rows]

    async def _write(self, query: str, params: Sequence[Any] = ()) -> int:
        """Run one statement and commit. Returns the affected row count."""
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(query, params)
            await db.commit()
            return cur.rowcount
