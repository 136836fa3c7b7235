"""Context Assembler: token-budgeted prompt context with recalled memories.

Builds a ContextWindow from a conversation's turns: the turns are kept
as-is (never reordered or trimmed) and, while budget remains, the memories
most similar to the latest user turn are attached. Memory subsystem failures
degrade to an empty memory list so the chat itself still goes through.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from llm_workspace.config import WORKSPACE_CONFIG
from llm_workspace.core.retrieval import MemoryRetriever
from llm_workspace.errors import EmbeddingUnavailable, MemoryStoreError
from llm_workspace.models import ContextWindow, ConversationTurn, MemoryRecord
from llm_workspace.prompts import (
    HISTORY_SECTION_HEADER,
    MEMORY_SECTION_HEADER,
    MEMORY_SYSTEM_PREFACE,
    ROLE_LABELS,
)

logger = logging.getLogger(__name__)


def estimate_tokens(text: str, chars_per_token: int | None = None) -> int:
    """Cheap token estimate: characters / chars_per_token, rounded up. Not a tokenizer."""
    ratio = chars_per_token or WORKSPACE_CONFIG["chars_per_token"]
    return math.ceil(len(text) / ratio)


class ContextAssembler:
    """Builds context windows and retains user turns as memories."""

    def __init__(self, retriever: MemoryRetriever, config: dict | None = None) -> None:
        self.retriever = retriever
        self.config = config or WORKSPACE_CONFIG

    async def build_context_window(
        self,
        user_id: str,
        turns: Sequence[ConversationTurn],
        token_budget: int | None = None,
        conversation_id: str | None = None,
    ) -> ContextWindow:
        budget = token_budget if token_budget is not None else self.config["token_budget"]
        turns = tuple(turns)
        current_tokens = sum(self._estimate(t.content) for t in turns)
        window = ContextWindow(turns=turns, total_tokens=current_tokens)

        if current_tokens >= budget or not turns:
            return window

        last_user = next((t for t in reversed(turns) if t.role == "user"), None)
        if last_user is None:
            return window

        remaining = budget - current_tokens
        max_memories = remaining // self.config["tokens_per_memory"]
        if max_memories == 0:
            return window

        try:
            candidates = await self.retriever.relevant_memories(
                user_id, last_user.content, max_memories, conversation_id=conversation_id,
            )
        except (EmbeddingUnavailable, MemoryStoreError):
            logger.exception("Memory retrieval failed for user %s, continuing without", user_id)
            return window

        for memory in candidates:
            cost = self._estimate(memory.content)
            if window.memory_tokens + cost > remaining:
                break
            window.relevant_memories.append(memory)
            window.memory_tokens += cost

        logger.info(
            "Context window: %d turns, %d tokens, %d memories (budget %d)",
            len(turns), current_tokens, len(window.relevant_memories), budget,
        )
        return window

    async def extract_and_store_memories(
        self,
        user_id: str,
        conversation_id: str,
        turns: Sequence[ConversationTurn],
    ) -> list[str]:
        """Store every user turn as a ``message`` memory. Returns the new IDs."""
        memory_ids: list[str] = []
        for turn in turns:
            if turn.role != "user":
                continue
            record = MemoryRecord(
                user_id=user_id,
                conversation_id=conversation_id,
                content=turn.content,
                kind=self.config["default_memory_kind"],
                importance=self.config["default_memory_importance"],
                metadata={"message_timestamp": turn.timestamp},
            )
            memory_ids.append(await self.retriever.store_memory(record))
        return memory_ids

    def _estimate(self, text: str) -> int:
        return estimate_tokens(text, self.config["chars_per_token"])

    def format_for_prompt(self, window: ContextWindow) -> str:
        prompt = ""

        if window.relevant_memories:
            prompt += MEMORY_SECTION_HEADER + "\n"
            for memory in window.relevant_memories:
                prompt += f"- {memory.content}\n"
            prompt += "\n"

        prompt += HISTORY_SECTION_HEADER + "\n"
        for turn in window.turns:
            prompt += f"{ROLE_LABELS[turn.role]}: {turn.content}\n"

        return prompt

    def augment_turns(self, window: ContextWindow) -> tuple[ConversationTurn, ...]:
        """Prepend a system turn carrying the recalled context, if any."""
        if not window.relevant_memories:
            return window.turns
        system_turn = ConversationTurn(
            role="system",
            content=MEMORY_SYSTEM_PREFACE + self.format_for_prompt(window),
        )
        return (system_turn, *window.turns)
