"""LiteLLM transport shared by the provider adapters.

Adapters own their backend's message schema and options; this module only
moves OpenAI-shaped requests through litellm and turns responses into the
common GenerationResult shape. No retries: failures go straight back to the
adapter.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import litellm

from llm_workspace.models import UNKNOWN_TOKENS, GenerationResult, TokenUsage

logger = logging.getLogger(__name__)

# Suppress litellm's verbose logging
litellm.suppress_debug_info = True

_FINISH_REASONS = {
    "stop": "stop",
    "end_turn": "stop",
    "stop_sequence": "stop",
    "length": "length",
    "max_tokens": "length",
}


async def llm_complete(model: str, messages: list[dict[str, str]], **params: Any) -> Any:
    """Send a completion request via litellm and return the raw response."""
    logger.debug("Completion request: model=%s, %d messages", model, len(messages))
    return await litellm.acompletion(model=model, messages=messages, **params)


async def llm_stream(
    model: str, messages: list[dict[str, str]], **params: Any,
) -> AsyncIterator[str]:
    """Yield text deltas as the backend produces them.

    The backend stream is released on every exit path, including the
    consumer closing this generator early.
    """
    logger.debug("Streaming request: model=%s, %d messages", model, len(messages))
    response = await litellm.acompletion(model=model, messages=messages, stream=True, **params)
    try:
        async for chunk in response:
            text = _delta_text(chunk)
            if text:
                yield text
    finally:
        await _release(response)


def to_result(response: Any, model_id: str) -> GenerationResult:
    """Normalise a litellm completion response."""
    choice = response.choices[0]
    return GenerationResult(
        text=choice.message.content or "",
        model_id=model_id,
        usage=_usage(response),
        finish_reason=normalize_finish_reason(choice.finish_reason),
        raw=response,
    )


def normalize_finish_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    return _FINISH_REASONS.get(reason.lower(), reason.lower())


def _usage(response: Any) -> TokenUsage:
    usage = getattr(response, "usage", None)
    if usage is None:
        return TokenUsage()
    prompt = _count(getattr(usage, "prompt_tokens", None))
    completion = _count(getattr(usage, "completion_tokens", None))
    total = _count(getattr(usage, "total_tokens", None))
    if total == UNKNOWN_TOKENS and UNKNOWN_TOKENS not in (prompt, completion):
        total = prompt + completion
    return TokenUsage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)


def _count(value: Any) -> int:
    return int(value) if isinstance(value, int) and value >= 0 else UNKNOWN_TOKENS


def _delta_text(chunk: Any) -> str | None:
    if not chunk.choices:
        return None
    delta = chunk.choices[0].delta
    return getattr(delta, "content", None) if delta is not None else None


async def _release(response: Any) -> None:
    # litellm exposes the provider stream either directly or via completion_stream
    for stream in (response, getattr(response, "completion_stream", None)):
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()
            return
