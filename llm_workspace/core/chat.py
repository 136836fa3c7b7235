"""Chat service: the request-handling flow in front of the router.

For a signed-in user with memory enabled, the user's turns are retained as
memories and a context window is built concurrently; recalled context is
prepended as a system turn before the request is routed. Memory failures
never fail the chat.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from llm_workspace.config import WORKSPACE_CONFIG
from llm_workspace.core.context import ContextAssembler
from llm_workspace.errors import InvalidRequest
from llm_workspace.models import ConversationTurn, GenerationOptions
from llm_workspace.providers.router import ProviderRouter

logger = logging.getLogger(__name__)


@dataclass
class ChatRequest:
    turns: list[ConversationTurn]
    model_id: str | None = None
    options: GenerationOptions = field(default_factory=GenerationOptions)
    user_id: str | None = None
    conversation_id: str | None = None
    include_memory: bool = True


@dataclass
class ChatResponse:
    response: str
    included_memories: bool = False
    memory_count: int = 0

    def to_dict(self) -> dict:
        return {
            "response": self.response,
            "includedMemories": self.included_memories,
            "memoryCount": self.memory_count,
        }


class ChatService:
    def __init__(
        self,
        router: ProviderRouter,
        assembler: ContextAssembler,
        config: dict | None = None,
    ) -> None:
        self.router = router
        self.assembler = assembler
        self.config = config or WORKSPACE_CONFIG

    async def chat(self, request: ChatRequest) -> ChatResponse:
        turns, memory_count = await self._prepare(request)
        result = await self.router.generate(self._model_id(request), turns, request.options)
        return ChatResponse(
            response=result.text,
            included_memories=memory_count > 0,
            memory_count=memory_count,
        )

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[str]:
        """Yield response fragments, then the end marker."""
        turns, _memory_count = await self._prepare(request)
        stream = await self.router.generate_stream(self._model_id(request), turns, request.options)
        async with stream:
            async for fragment in stream:
                yield fragment
        yield self.config["stream_end_marker"]

    def _model_id(self, request: ChatRequest) -> str:
        return request.model_id or self.config["default_model"]

    async def _prepare(self, request: ChatRequest) -> tuple[tuple[ConversationTurn, ...], int]:
        """Validate the request and return (turns to send, memories included)."""
        turns = tuple(request.turns)
        if not turns:
            raise InvalidRequest("Messages are required")

        user_id = request.user_id or self.config["anonymous_user_id"]
        if not request.include_memory or user_id == self.config["anonymous_user_id"]:
            return turns, 0

        tasks = [self.assembler.build_context_window(user_id, turns)]
        if request.conversation_id:
            tasks.append(
                self.assembler.extract_and_store_memories(user_id, request.conversation_id, turns)
            )
        window, *extracted = await asyncio.gather(*tasks, return_exceptions=True)

        for outcome in extracted:
            if isinstance(outcome, Exception):
                logger.error("Memory extraction failed for user %s", user_id, exc_info=outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                logger.debug("Stored %d memories for user %s", len(outcome), user_id)

        if isinstance(window, Exception):
            logger.error("Context window failed for user %s", user_id, exc_info=window)
            return turns, 0
        if isinstance(window, BaseException):
            raise window

        return self.assembler.augment_turns(window), len(window.relevant_memories)


def encode_sse(fragment: str, end_marker: str | None = None) -> str:
    """Frame one chat_stream item as a server-sent event."""
    if fragment == (end_marker or WORKSPACE_CONFIG["stream_end_marker"]):
        return f"data: {fragment}\n\n"
    return f"data: {json.dumps({'text': fragment})}\n\n"
