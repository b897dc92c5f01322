"""SQLite-backed record store for conversations and proposals."""

import json
import time
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

logger = structlog.get_logger()


class RecordStore:
    """Keeps JSON documents grouped by collection, in insertion order."""

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / "ceo_agent.db"
        self._initialized = False

    async def initialize(self) -> None:
        """Create the data directory and schema if missing."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    collection TEXT NOT NULL,
                    record_id TEXT NOT NULL,
                    data TEXT NOT NULL,  -- JSON document
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    UNIQUE(collection, record_id)
                )
            """)
            await db.execute(
                "CREATE INDEX IF NOT EXISTS idx_records_collection ON records(collection, seq)"
            )
            await db.commit()

        self._initialized = True
        logger.info("Record store initialized", db_path=str(self.db_path))

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    async def put(self, collection: str, record_id: str, data: dict[str, Any]) -> None:
        """Insert or replace a record, keeping its original position."""
        await self._ensure_initialized()
        now = time.time()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO records (collection, record_id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(collection, record_id)
                DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
                """,
                (collection, record_id, json.dumps(data), now, now),
            )
            await db.commit()

    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        await self._ensure_initialized()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT data FROM records WHERE collection = ? AND record_id = ?",
                (collection, record_id),
            )
            row = await cursor.fetchone()
        return json.loads(row[0]) if row else None

    async def list_records(self, collection: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Records oldest first; with ``limit``, only the newest ``limit`` of them."""
        await self._ensure_initialized()
        if limit is None:
            query = "SELECT data FROM records WHERE collection = ? ORDER BY seq ASC"
            params: tuple = (collection,)
        else:
            query = """
                SELECT data FROM (
                    SELECT seq, data FROM records WHERE collection = ?
                    ORDER BY seq DESC LIMIT ?
                ) ORDER BY seq ASC
            """
            params = (collection, limit)

        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
        return [json.loads(row[0]) for row in rows]
