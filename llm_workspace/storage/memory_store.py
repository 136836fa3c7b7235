"""Memory store adapter contract and an in-process implementation.

The store is append-only: records are created and queried, never updated.
Query results carry no ordering guarantee; callers re-rank.
"""

from __future__ import annotations

import logging
from typing import Protocol

from llm_workspace.models import MemoryRecord

logger = logging.getLogger(__name__)


class MemoryStore(Protocol):
    async def create(self, record: MemoryRecord) -> str: ...

    async def query(
        self, user_id: str, conversation_id: str | None = None,
    ) -> list[MemoryRecord]: ...


class InMemoryMemoryStore:
    """Process-local store. Suitable for tests and single-process deployments."""

    def __init__(self) -> None:
        self._records: list[MemoryRecord] = []

    async def create(self, record: MemoryRecord) -> str:
        self._records.append(record)
        logger.debug("Stored memory %s for user %s", record.id, record.user_id)
        return record.id

    async def query(
        self, user_id: str, conversation_id: str | None = None,
    ) -> list[MemoryRecord]:
        return [
            r for r in self._records
            if r.user_id == user_id
            and (conversation_id is None or r.conversation_id == conversation_id)
        ]

    async def count(self, user_id: str | None = None) -> int:
        if user_id is None:
            return len(self._records)
        return sum(1 for r in self._records if r.user_id == user_id)
