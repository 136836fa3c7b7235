"""Data models for the LLM workspace core."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

ROLES = ("user", "assistant", "system")
MEMORY_KINDS = ("message", "summary", "knowledge", "fact")

# Sentinel for token counts a backend does not report
UNKNOWN_TOKENS = -1


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ConversationTurn:
    role: str  # user | assistant | system
    content: str
    timestamp: str = field(default_factory=_now)
    model_id: str | None = None

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown turn role: {self.role!r}")


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    family: str  # openai | google | anthropic | mistral
    display_name: str
    description: str = ""
    max_context_tokens: int = 0
    supports_functions: bool = False
    supports_vision: bool = False
    cost_tier: str = "paid"
    # Backend's own name for the model
    native_id: str = ""


@dataclass(frozen=True)
class MemoryRecord:
    user_id: str
    content: str
    id: str = field(default_factory=_uuid)
    conversation_id: str | None = None
    embedding: tuple[float, ...] | None = None
    kind: str = "message"  # message | summary | knowledge | fact
    importance: int = 5
    created_at: str = field(default_factory=_now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.kind not in MEMORY_KINDS:
            raise ValueError(f"Unknown memory kind: {self.kind!r}")
        if not 0 <= self.importance <= 10:
            raise ValueError(f"Importance must be within 0-10, got {self.importance}")


@dataclass
class ContextWindow:
    """Request-scoped prompt context. Never persisted."""
    turns: tuple[ConversationTurn, ...] = ()
    total_tokens: int = 0
    relevant_memories: list[MemoryRecord] = field(default_factory=list)
    memory_tokens: int = 0

    @property
    def estimated_size(self) -> int:
        return self.total_tokens + self.memory_tokens


@dataclass(frozen=True)
class GenerationOptions:
    """Per-request generation knobs. ``None`` means use the family default."""
    temperature: float | None = None
    max_output_tokens: int | None = None
    top_k: int | None = None
    top_p: float | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in (
                ("temperature", self.temperature),
                ("max_output_tokens", self.max_output_tokens),
                ("top_k", self.top_k),
                ("top_p", self.top_p),
            )
            if value is not None
        }


@dataclass(frozen=True)
class GenerationRequest:
    model_id: str
    prompt: str | None = None
    turns: tuple[ConversationTurn, ...] | None = None
    options: GenerationOptions = field(default_factory=GenerationOptions)

    def __post_init__(self) -> None:
        if (self.prompt is None) == (self.turns is None):
            raise ValueError("GenerationRequest needs exactly one of prompt or turns")


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = UNKNOWN_TOKENS
    completion_tokens: int = UNKNOWN_TOKENS
    total_tokens: int = UNKNOWN_TOKENS

    @property
    def known(self) -> bool:
        return self.total_tokens != UNKNOWN_TOKENS


@dataclass
class GenerationResult:
    text: str
    model_id: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str | None = None
    # Provider-native response, kept for diagnostics
    raw: Any = None
