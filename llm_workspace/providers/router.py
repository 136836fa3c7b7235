"""Provider Router: one generation contract over every backend family.

The registry decides which family serves a model; the router owns one
adapter per family, built on first use and connected on demand. Capability
gaps are bridged here: a declined streaming capability is served by the
one-shot call emitted as a single fragment, and declined prompt-only
generation is sent as a one-turn chat.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from llm_workspace.config import WORKSPACE_CONFIG
from llm_workspace.errors import BackendError, InvalidRequest, ProviderUnavailable, WorkspaceError
from llm_workspace.models import (
    ConversationTurn,
    GenerationOptions,
    GenerationRequest,
    GenerationResult,
    ModelDescriptor,
)
from llm_workspace.providers.base import (
    Capability,
    ExecutionContext,
    FragmentStream,
    ProviderAdapter,
)
from llm_workspace.providers.gemini_adapter import GeminiAdapter
from llm_workspace.providers.openai_adapter import OpenAIAdapter
from llm_workspace.providers.registry import DEFAULT_REGISTRY, ModelRegistry
from llm_workspace.providers.vertex_adapter import VertexAdapter

logger = logging.getLogger(__name__)

PromptOrTurns = str | Sequence[ConversationTurn]

DEFAULT_ADAPTERS: dict[str, type[ProviderAdapter]] = {
    "openai": OpenAIAdapter,
    "google": GeminiAdapter,
    "anthropic": VertexAdapter,
    "mistral": VertexAdapter,
}


class ProviderRouter:
    """Routes generation requests to the adapter for each model's family."""

    def __init__(
        self,
        registry: ModelRegistry | None = None,
        execution_context: ExecutionContext | str | None = None,
        adapter_factories: Mapping[str, type[ProviderAdapter]] | None = None,
        config: dict | None = None,
    ) -> None:
        self.config = config or WORKSPACE_CONFIG
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self.execution_context = ExecutionContext(
            execution_context or self.config["execution_context"]
        )
        self._factories = dict(adapter_factories or DEFAULT_ADAPTERS)
        self._adapters: dict[str, ProviderAdapter] = {}

    # ── Registry ──

    def list_models(self) -> list[ModelDescriptor]:
        return self.registry.descriptors()

    def get_model(self, model_id: str) -> ModelDescriptor:
        return self.registry.get(model_id)

    # ── Adapters ──

    def adapter_for(self, family: str) -> ProviderAdapter:
        """Return the family's adapter, constructing it on first use."""
        adapter = self._adapters.get(family)
        if adapter is not None:
            return adapter

        factory = self._factories.get(family)
        if factory is None:
            raise ProviderUnavailable(family, "no adapter is registered for this family")
        if factory.privileged_only and self.execution_context is not ExecutionContext.SERVER:
            raise ProviderUnavailable(family, "only available from the server execution context")
        try:
            adapter = factory.create(family, self.config)
        except Exception as exc:
            raise ProviderUnavailable(family, str(exc)) from exc

        self._adapters[family] = adapter
        logger.debug("Created %s adapter for family %s", type(adapter).__name__, family)
        return adapter

    async def close(self) -> None:
        """Disconnect every adapter this router has built."""
        for family, adapter in self._adapters.items():
            try:
                await adapter.disconnect()
            except Exception:
                logger.exception("Failed to disconnect %s adapter", family)

    def status(self) -> dict[str, dict[str, Any]]:
        return {family: adapter.status() for family, adapter in self._adapters.items()}

    # ── Generation ──

    async def generate(
        self,
        model_id: str,
        prompt_or_turns: PromptOrTurns,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        descriptor, request = self._resolve(model_id, prompt_or_turns, options)
        adapter = await self._connected_adapter(descriptor)
        return await self._one_shot(adapter, descriptor, request)

    async def generate_stream(
        self,
        model_id: str,
        prompt_or_turns: PromptOrTurns,
        options: GenerationOptions | None = None,
    ) -> FragmentStream:
        """Open a fragment stream.

        The model is resolved, the adapter connected and the capability
        checked before the stream is returned. The backend call itself starts
        on the first fragment, so its failures surface while iterating.
        """
        descriptor, request = self._resolve(model_id, prompt_or_turns, options)
        adapter = await self._connected_adapter(descriptor)

        native = (
            Capability.GENERATE_STREAM if request.prompt is not None
            else Capability.CHAT_WITH_HISTORY_STREAM
        )
        if not adapter.supports(native):
            self._one_shot_capability(adapter, request)
            logger.info(
                "%s declines %s for %s, streaming the one-shot response",
                adapter.family, native.value, descriptor.id,
            )
            return FragmentStream(
                self._single_response(adapter, descriptor, request),
                family=adapter.family, model_id=descriptor.id,
            )

        try:
            if native is Capability.GENERATE_STREAM:
                stream = adapter.generate_stream(descriptor, request.prompt, request.options)
            else:
                stream = adapter.chat_with_history_stream(descriptor, request.turns, request.options)
        except WorkspaceError:
            raise
        except Exception as exc:
            raise self._backend_error(adapter, descriptor, exc) from exc

        if not isinstance(stream, FragmentStream):
            stream = FragmentStream(stream, family=adapter.family, model_id=descriptor.id)
        return stream

    def _resolve(
        self,
        model_id: str,
        prompt_or_turns: PromptOrTurns,
        options: GenerationOptions | None,
    ) -> tuple[ModelDescriptor, GenerationRequest]:
        descriptor = self.registry.get(model_id)
        options = options or GenerationOptions()
        if isinstance(prompt_or_turns, str):
            return descriptor, GenerationRequest(model_id, prompt=prompt_or_turns, options=options)
        turns = tuple(prompt_or_turns)
        if not turns:
            raise InvalidRequest("At least one conversation turn is required")
        return descriptor, GenerationRequest(model_id, turns=turns, options=options)

    async def _connected_adapter(self, descriptor: ModelDescriptor) -> ProviderAdapter:
        adapter = self.adapter_for(descriptor.family)
        if not adapter.connected:
            logger.info("Connecting %s adapter for %s", descriptor.family, descriptor.id)
            try:
                await adapter.connect()
            except WorkspaceError:
                raise
            except Exception as exc:
                raise self._backend_error(adapter, descriptor, exc) from exc
        return adapter

    def _one_shot_capability(self, adapter: ProviderAdapter, request: GenerationRequest) -> Capability:
        if request.prompt is not None and adapter.supports(Capability.GENERATE):
            return Capability.GENERATE
        if adapter.supports(Capability.CHAT_WITH_HISTORY):
            return Capability.CHAT_WITH_HISTORY
        raise ProviderUnavailable(
            adapter.family, adapter.decline_reason(Capability.CHAT_WITH_HISTORY) or "chat declined",
        )

    async def _one_shot(
        self, adapter: ProviderAdapter, descriptor: ModelDescriptor, request: GenerationRequest,
    ) -> GenerationResult:
        capability = self._one_shot_capability(adapter, request)
        try:
            if capability is Capability.GENERATE:
                result = await adapter.generate(descriptor, request.prompt, request.options)
            else:
                turns = request.turns
                if turns is None:
                    turns = (ConversationTurn(role="user", content=request.prompt),)
                result = await adapter.chat_with_history(descriptor, turns, request.options)
        except WorkspaceError:
            raise
        except Exception as exc:
            raise self._backend_error(adapter, descriptor, exc) from exc

        result.model_id = descriptor.id
        return result

    async def _single_response(
        self, adapter: ProviderAdapter, descriptor: ModelDescriptor, request: GenerationRequest,
    ) -> AsyncIterator[str]:
        result = await self._one_shot(adapter, descriptor, request)
        yield result.text

    @staticmethod
    def _backend_error(
        adapter: ProviderAdapter, descriptor: ModelDescriptor, exc: Exception,
    ) -> BackendError:
        return BackendError(
            f"{adapter.family} request for {descriptor.id} failed: {exc}",
            family=adapter.family, model_id=descriptor.id, original=exc,
        )
