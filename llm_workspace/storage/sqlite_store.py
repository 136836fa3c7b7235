"""SQLite storage for memory records."""

from __future__ import annotations

import json
from pathlib import Path

import aiosqlite

from llm_workspace.config import DB_PATH
from llm_workspace.errors import MemoryStoreError
from llm_workspace.models import MemoryRecord

_SCHEMA = """
CREATE TABLE IF NOT EXISTS memories (
    id               TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    conversation_id  TEXT,
    content          TEXT NOT NULL,
    embedding        TEXT,
    kind             TEXT NOT NULL DEFAULT 'message',
    importance       INTEGER NOT NULL DEFAULT 5,
    created_at       TEXT NOT NULL,
    metadata         TEXT
);

CREATE INDEX IF NOT EXISTS idx_memories_user ON memories(user_id);
CREATE INDEX IF NOT EXISTS idx_memories_conversation ON memories(user_id, conversation_id);
"""


class SQLiteMemoryStore:
    """Async SQLite store for memory records."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path or DB_PATH
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self.db_path))
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(_SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "SQLiteMemoryStore not initialized — call initialize() first"
        return self._db

    async def create(self, record: MemoryRecord) -> str:
        embedding = json.dumps(list(record.embedding)) if record.embedding is not None else None
        try:
            await self.db.execute(
                """INSERT INTO memories
                (id, user_id, conversation_id, content, embedding, kind,
                 importance, created_at, metadata)
                VALUES (?,?,?,?,?,?,?,?,?)""",
                (
                    record.id, record.user_id, record.conversation_id, record.content,
                    embedding, record.kind, record.importance, record.created_at,
                    json.dumps(record.metadata),
                ),
            )
            await self.db.commit()
        except aiosqlite.Error as exc:
            raise MemoryStoreError(f"Failed to store memory {record.id}") from exc
        return record.id

    async def query(
        self, user_id: str, conversation_id: str | None = None,
    ) -> list[MemoryRecord]:
        if conversation_id is None:
            sql = "SELECT * FROM memories WHERE user_id = ?"
            params: tuple = (user_id,)
        else:
            sql = "SELECT * FROM memories WHERE user_id = ? AND conversation_id = ?"
            params = (user_id, conversation_id)

        try:
            async with self.db.execute(sql, params) as cur:
                return [_row_to_record(dict(row)) async for row in cur]
        except aiosqlite.Error as exc:
            raise MemoryStoreError(f"Failed to query memories for user {user_id}") from exc

    async def count(self, user_id: str | None = None) -> int:
        if user_id:
            sql, params = "SELECT COUNT(*) FROM memories WHERE user_id = ?", (user_id,)
        else:
            sql, params = "SELECT COUNT(*) FROM memories", ()
        try:
            async with self.db.execute(sql, params) as cur:
                row = await cur.fetchone()
        except aiosqlite.Error as exc:
            raise MemoryStoreError("Failed to count memories") from exc
        return row[0]


def _row_to_record(row: dict) -> MemoryRecord:
    embedding = row.get("embedding")
    return MemoryRecord(
        id=row["id"],
        user_id=row["user_id"],
        conversation_id=row.get("conversation_id"),
        content=row["content"],
        embedding=tuple(json.loads(embedding)) if embedding else None,
        kind=row.get("kind") or "message",
        importance=row.get("importance", 5),
        created_at=row["created_at"],
        metadata=json.loads(row["metadata"]) if row.get("metadata") else {},
    )
