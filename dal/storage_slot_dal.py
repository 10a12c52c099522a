"""Async Data Access Layer for the STORAGE_SLOT table.

A storage slot is a single named text value, overwritten as a whole. The
`StorageSlotDAL` works with `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import time
from typing import Optional

from utils.database_init import AsyncDatabaseInitializer


class StorageSlotDAL:
    """Data access layer for named STORAGE_SLOT values.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def read_slot(self, name: str) -> Optional[str]:
        """Return the text stored under `name`, or None if the slot is empty."""
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT value FROM STORAGE_SLOT WHERE name = ?", (name,))
            row = await cur.fetchone()
            return row[0] if row else None

    async def write_slot(self, name: str, value: str) -> None:
        """Overwrite the slot `name` with `value`, creating it if needed."""
        async with self._db.connection() as conn:
            await conn.execute(
                "INSERT INTO STORAGE_SLOT (name, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(name) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                (name, value, int(time.time())),
            )
            await conn.commit()
