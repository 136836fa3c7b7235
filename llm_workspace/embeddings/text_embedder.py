"""Embedding providers for memory storage and retrieval.

Both providers share one contract: ``await embed(texts)`` returns one vector
per input text, in input order.

  - LiteLLMEmbedder: hosted embedding model reached through litellm
  - TextEmbedder: sentence-transformers model run locally on CPU or GPU
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import litellm
from sentence_transformers import SentenceTransformer

from llm_workspace.config import WORKSPACE_CONFIG

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    async def embed(self, texts: list[str]) -> list[list[float]]: ...


class LiteLLMEmbedder:
    """Remote embeddings via ``litellm.aembedding``."""

    def __init__(self, model: str | None = None, dimensions: int | None = None) -> None:
        self.model = model or WORKSPACE_CONFIG["embedding_model"]
        self.dimensions = dimensions or WORKSPACE_CONFIG["embedding_dimensions"]

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        params = {"dimensions": self.dimensions} if self.dimensions else {}
        response = await litellm.aembedding(model=self.model, input=list(texts), **params)
        items = sorted(response.data, key=_item_index)
        return [list(_item_vector(item)) for item in items]


class TextEmbedder:
    """Lazy-loading wrapper around sentence-transformers."""

    def __init__(self, model_name: str | None = None) -> None:
        self._model_name = model_name or WORKSPACE_CONFIG["local_embedding_model"]
        self._model: SentenceTransformer | None = None

    @property
    def model(self) -> SentenceTransformer:
        if self._model is None:
            logger.info("Loading text embedding model: %s", self._model_name)
            self._model = SentenceTransformer(self._model_name)
        return self._model

    @property
    def dimension(self) -> int:
        return self.model.get_sentence_embedding_dimension()

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed texts off the event loop. Returns a list of float lists."""
        if not texts:
            return []
        return await asyncio.to_thread(self._encode, list(texts))

    def _encode(self, texts: list[str]) -> list[list[float]]:
        vectors = self.model.encode(texts, convert_to_numpy=True)
        return [v.tolist() for v in vectors]


def create_embedder(backend: str | None = None) -> EmbeddingProvider:
    """Build the embedding provider named in config ("litellm" or "local")."""
    backend = backend or WORKSPACE_CONFIG["embedding_backend"]
    if backend == "litellm":
        return LiteLLMEmbedder()
    if backend == "local":
        return TextEmbedder()
    raise ValueError(f"Unknown embedding backend: {backend}")


# litellm returns embedding items as dicts or objects depending on provider
def _item_index(item) -> int:
    if isinstance(item, dict):
        return item.get("index", 0)
    return getattr(item, "index", 0)


def _item_vector(item) -> list[float]:
    if isinstance(item, dict):
        return item["embedding"]
    return item.embedding
