"""Model registry: the single authority for routing decisions.

Each supported model identifier maps to immutable metadata, including the
backend family that serves it and the backend's own name for it. New models
are added by registering a descriptor here, not by touching routing code.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from llm_workspace.errors import UnsupportedModel
from llm_workspace.models import ModelDescriptor


class ModelRegistry:
    """Read-only mapping of model identifier to descriptor."""

    def __init__(self, descriptors: Iterable[ModelDescriptor]) -> None:
        models: dict[str, ModelDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in models:
                raise ValueError(f"Duplicate model identifier: {descriptor.id}")
            models[descriptor.id] = descriptor
        self._models = MappingProxyType(models)

    def get(self, model_id: str) -> ModelDescriptor:
        try:
            return self._models[model_id]
        except KeyError:
            raise UnsupportedModel(model_id) from None

    def descriptors(self) -> list[ModelDescriptor]:
        return list(self._models.values())

    def families(self) -> set[str]:
        return {d.family for d in self._models.values()}

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __iter__(self) -> Iterator[str]:
        return iter(self._models)

    def __len__(self) -> int:
        return len(self._models)


DEFAULT_MODELS = (
    # Google Gemini
    ModelDescriptor(
        id="gemini-1.5-pro", family="google", display_name="Gemini 1.5 Pro",
        description="Most capable Google model with 1M context window",
        max_context_tokens=1048576, supports_functions=True, supports_vision=True,
        native_id="gemini-1.5-pro",
    ),
    ModelDescriptor(
        id="gemini-1.5-flash", family="google", display_name="Gemini 1.5 Flash",
        description="Fast and efficient Google model",
        max_context_tokens=1048576, supports_functions=True, supports_vision=True,
        native_id="gemini-1.5-flash",
    ),
    ModelDescriptor(
        id="gemini-1.5-flash-lite", family="google", display_name="Gemini 1.5 Flash Lite",
        description="Optimized for cost-efficiency and latency",
        max_context_tokens=1048576, supports_functions=True, supports_vision=True,
        native_id="gemini-1.5-flash-8b",
    ),
    ModelDescriptor(
        id="gemini-1.0-pro", family="google", display_name="Gemini 1.0 Pro",
        description="Versatile language model for various tasks",
        max_context_tokens=32768, supports_functions=True, supports_vision=False,
        native_id="gemini-1.0-pro",
    ),
    ModelDescriptor(
        id="gemini-1.0-pro-vision", family="google", display_name="Gemini 1.0 Pro Vision",
        description="Supports text, images, and vision tasks",
        max_context_tokens=32768, supports_functions=True, supports_vision=True,
        native_id="gemini-1.0-pro-vision",
    ),
    # OpenAI
    ModelDescriptor(
        id="gpt-4-turbo", family="openai", display_name="GPT-4 Turbo",
        description="OpenAI's most capable model",
        max_context_tokens=128000, supports_functions=True, supports_vision=True,
        native_id="gpt-4-turbo",
    ),
    ModelDescriptor(
        id="gpt-4o", family="openai", display_name="GPT-4o",
        description="OpenAI's most advanced multimodal model",
        max_context_tokens=128000, supports_functions=True, supports_vision=True,
        native_id="gpt-4o",
    ),
    ModelDescriptor(
        id="gpt-3.5-turbo", family="openai", display_name="GPT-3.5 Turbo",
        description="Efficient OpenAI model with good capabilities",
        max_context_tokens=16000, supports_functions=True, supports_vision=True,
        native_id="gpt-3.5-turbo",
    ),
    # Anthropic Claude, served through Vertex AI
    ModelDescriptor(
        id="claude-3-opus", family="anthropic", display_name="Claude 3 Opus",
        description="Anthropic's most capable model",
        max_context_tokens=200000, supports_functions=True, supports_vision=True,
        native_id="claude-3-opus@20240229",
    ),
    ModelDescriptor(
        id="claude-3-sonnet", family="anthropic", display_name="Claude 3 Sonnet",
        description="Balanced Claude model for performance and efficiency",
        max_context_tokens=180000, supports_functions=True, supports_vision=True,
        native_id="claude-3-sonnet@20240229",
    ),
    ModelDescriptor(
        id="claude-3-haiku", family="anthropic", display_name="Claude 3 Haiku",
        description="Fast, compact model for high-throughput applications",
        max_context_tokens=150000, supports_functions=True, supports_vision=True,
        native_id="claude-3-haiku@20240307",
    ),
    ModelDescriptor(
        id="claude-2.1", family="anthropic", display_name="Claude 2.1",
        description="Previous generation Claude model",
        max_context_tokens=100000, supports_functions=False, supports_vision=False,
        native_id="claude-2.1",
    ),
    # Mistral, served through Vertex AI
    ModelDescriptor(
        id="mistral-small-2402", family="mistral", display_name="Mistral Small 2402",
        description="Balanced model for everyday use",
        max_context_tokens=32000, supports_functions=True, supports_vision=False,
        native_id="mistral-small@2402",
    ),
    ModelDescriptor(
        id="mistral-medium-2312", family="mistral", display_name="Mistral Medium 2312",
        description="Advanced reasoning and context understanding",
        max_context_tokens=32000, supports_functions=True, supports_vision=False,
        native_id="mistral-medium@2312",
    ),
    ModelDescriptor(
        id="mistral-large-2402", family="mistral", display_name="Mistral Large 2402",
        description="Superior model for complex tasks",
        max_context_tokens=32000, supports_functions=True, supports_vision=False,
        native_id="mistral-large@2402",
    ),
)

DEFAULT_REGISTRY = ModelRegistry(DEFAULT_MODELS)
