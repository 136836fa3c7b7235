"""Embedding-backed memory storage and similarity retrieval.

Records are embedded at store time. Retrieval pulls the user's whole corpus
from the store, embeds the query, and re-ranks locally with cosine
similarity. Records without an embedding rank as zero vectors.
"""

from __future__ import annotations

import dataclasses
import logging

from llm_workspace.core.similarity import rank
from llm_workspace.embeddings.text_embedder import EmbeddingProvider
from llm_workspace.errors import EmbeddingUnavailable
from llm_workspace.models import MemoryRecord, _now
from llm_workspace.storage.memory_store import MemoryStore

logger = logging.getLogger(__name__)


class MemoryRetriever:
    """Stores memories with embeddings and finds the ones relevant to a query."""

    def __init__(self, store: MemoryStore, embedder: EmbeddingProvider) -> None:
        self.store = store
        self.embedder = embedder

    async def store_memory(self, record: MemoryRecord) -> str:
        """Embed and persist a record. Returns the new record ID.

        Nothing is written if the embedding call fails.
        """
        vector = (await self._embed([record.content]))[0]
        stored = dataclasses.replace(record, embedding=tuple(vector), created_at=_now())
        memory_id = await self.store.create(stored)
        logger.debug("Stored %s memory %s (%d dims)", stored.kind, memory_id, len(vector))
        return memory_id

    async def relevant_memories(
        self,
        user_id: str,
        query_text: str,
        limit: int,
        conversation_id: str | None = None,
    ) -> list[MemoryRecord]:
        """Return up to ``limit`` of the user's memories, most similar first."""
        if limit <= 0:
            return []
        memories = await self.store.query(user_id, conversation_id)
        if not memories:
            return []

        query_vector = (await self._embed([query_text]))[0]
        zero = [0.0] * len(query_vector)
        corpus = [m.embedding if m.embedding is not None else zero for m in memories]

        ranked = rank(query_vector, corpus, limit)
        logger.debug(
            "Ranked %d memories for user %s, top score %.3f",
            len(memories), user_id, ranked[0][1] if ranked else 0.0,
        )
        return [memories[i] for i, _score in ranked]

    async def _embed(self, texts: list[str]) -> list[list[float]]:
        try:
            vectors = await self.embedder.embed(texts)
        except Exception as exc:
            raise EmbeddingUnavailable(f"Embedding call failed: {exc}") from exc
        if len(vectors) != len(texts):
            raise EmbeddingUnavailable(
                f"Embedding provider returned {len(vectors)} vectors for {len(texts)} texts"
            )
        return vectors
