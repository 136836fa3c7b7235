"""Provider adapter contract, capability sets and the fragment stream."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from enum import Enum
from typing import Any, ClassVar

from llm_workspace.config import WORKSPACE_CONFIG
from llm_workspace.errors import BackendError, ProviderUnavailable, WorkspaceError
from llm_workspace.llm.client import llm_complete, llm_stream, to_result
from llm_workspace.models import (
    ConversationTurn,
    GenerationOptions,
    GenerationResult,
    ModelDescriptor,
)

logger = logging.getLogger(__name__)


class AdapterState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class Capability(str, Enum):
    GENERATE = "generate"
    GENERATE_STREAM = "generate_stream"
    CHAT_WITH_HISTORY = "chat_with_history"
    CHAT_WITH_HISTORY_STREAM = "chat_with_history_stream"


class ExecutionContext(str, Enum):
    SERVER = "server"  # privileged: may reach server-side-only backends
    CLIENT = "client"


# GenerationOptions field -> litellm keyword
_OPTION_PARAMS = {
    "temperature": "temperature",
    "max_output_tokens": "max_tokens",
    "top_p": "top_p",
    "top_k": "top_k",
}


class FragmentStream:
    """Async iterator over text fragments from one backend stream.

    Empty fragments are skipped. Once exhausted, closed or failed the stream
    stays finished; it cannot be restarted. Failures that are not already
    workspace errors surface as BackendError with the original chained.
    """

    def __init__(
        self,
        source: AsyncIterator[str],
        family: str | None = None,
        model_id: str | None = None,
    ) -> None:
        self._source = source
        self.family = family
        self.model_id = model_id
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> FragmentStream:
        return self

    async def __anext__(self) -> str:
        while not self._closed:
            try:
                fragment = await self._source.__anext__()
            except StopAsyncIteration:
                await self.aclose()
                raise
            except WorkspaceError:
                await self.aclose()
                raise
            except Exception as exc:
                await self.aclose()
                raise BackendError(
                    f"Stream from {self.family} failed: {exc}",
                    family=self.family, model_id=self.model_id, original=exc,
                ) from exc
            if fragment:
                return fragment
        raise StopAsyncIteration

    async def aclose(self) -> None:
        """Release the backend stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    async def collect(self) -> str:
        """Drain the stream and return the concatenated text."""
        return "".join([fragment async for fragment in self])

    async def __aenter__(self) -> FragmentStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def coalesce(messages: list[dict[str, str]], separator: str = "\n\n") -> list[dict[str, str]]:
    """Merge runs of consecutive same-role messages into one message."""
    merged: list[dict[str, str]] = []
    for message in messages:
        if merged and merged[-1]["role"] == message["role"]:
            merged[-1] = {
                "role": message["role"],
                "content": merged[-1]["content"] + separator + message["content"],
            }
        else:
            merged.append(dict(message))
    return merged


class ProviderAdapter(ABC):
    """One backend family behind the uniform generation contract.

    Subclasses declare which capabilities they implement natively and which
    they decline, with a reason. Every capability must appear in exactly one
    of the two; this is checked when the subclass is created.
    """

    family: ClassVar[str] = ""
    config_key: ClassVar[str] = ""
    route_prefix: ClassVar[str] = ""
    privileged_only: ClassVar[bool] = False
    accepts_top_k: ClassVar[bool] = False
    capabilities: ClassVar[frozenset[Capability]] = frozenset()
    declined: ClassVar[dict[Capability, str]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.family:
            return
        both = cls.capabilities & set(cls.declined)
        if both:
            raise TypeError(
                f"{cls.__name__} both implements and declines: "
                f"{', '.join(sorted(c.value for c in both))}"
            )
        missing = set(Capability) - cls.capabilities - set(cls.declined)
        if missing:
            raise TypeError(
                f"{cls.__name__} must implement or decline: "
                f"{', '.join(sorted(c.value for c in missing))}"
            )

    def __init__(self, config: dict | None = None) -> None:
        self.config = config or WORKSPACE_CONFIG
        self.state = AdapterState.UNINITIALIZED
        self._call_params: dict[str, Any] = {}

    @classmethod
    def create(cls, family: str, config: dict | None = None) -> ProviderAdapter:
        """Build the adapter that serves ``family``."""
        return cls(config)

    @abstractmethod
    def _connection_params(self) -> dict[str, Any]:
        """Credentials and endpoint settings passed on every backend call.

        Raises if the backend cannot be reached with the current environment.
        """

    # ── Lifecycle ──

    @property
    def connected(self) -> bool:
        return self.state is AdapterState.CONNECTED

    async def connect(self) -> None:
        if self.connected:
            return
        try:
            self._call_params = self._connection_params()
        except Exception as exc:
            self.state = AdapterState.DISCONNECTED
            raise BackendError(
                f"Failed to connect to {self.family}: {exc}",
                family=self.family, original=exc,
            ) from exc
        self.state = AdapterState.CONNECTED
        logger.info("Connected %s adapter", self.family)

    async def disconnect(self) -> None:
        self._call_params = {}
        self.state = AdapterState.DISCONNECTED
        logger.info("Disconnected %s adapter", self.family)

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def decline_reason(self, capability: Capability) -> str | None:
        return self.declined.get(capability)

    def status(self) -> dict[str, Any]:
        return {
            "family": self.family,
            "state": self.state.value,
            "connected": self.connected,
            "capabilities": sorted(c.value for c in self.capabilities),
            "declined": {c.value: reason for c, reason in self.declined.items()},
        }

    # ── Request translation ──

    def translate_turns(self, turns: Sequence[ConversationTurn]) -> list[dict[str, str]]:
        return [{"role": t.role, "content": t.content} for t in turns]

    def route(self, model: ModelDescriptor) -> str:
        return f"{self.route_prefix}{model.native_id or model.id}"

    def request_params(self, options: GenerationOptions | None = None) -> dict[str, Any]:
        """Family defaults overridden by the request's options, as litellm kwargs."""
        defaults = self.config["providers"][self.config_key]["defaults"]
        merged = {**defaults, **(options or GenerationOptions()).as_dict()}
        if not self.accepts_top_k:
            merged.pop("top_k", None)
        params = {_OPTION_PARAMS[name]: value for name, value in merged.items()}
        return {**params, **self._call_params}

    # ── Capabilities ──

    async def generate(
        self, model: ModelDescriptor, prompt: str, options: GenerationOptions | None = None,
    ) -> GenerationResult:
        self._require(Capability.GENERATE)
        return await self._complete(model, [{"role": "user", "content": prompt}], options)

    def generate_stream(
        self, model: ModelDescriptor, prompt: str, options: GenerationOptions | None = None,
    ) -> FragmentStream:
        self._require(Capability.GENERATE_STREAM)
        return self._stream(model, [{"role": "user", "content": prompt}], options)

    async def chat_with_history(
        self,
        model: ModelDescriptor,
        turns: Sequence[ConversationTurn],
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        self._require(Capability.CHAT_WITH_HISTORY)
        return await self._complete(model, self.translate_turns(turns), options)

    def chat_with_history_stream(
        self,
        model: ModelDescriptor,
        turns: Sequence[ConversationTurn],
        options: GenerationOptions | None = None,
    ) -> FragmentStream:
        self._require(Capability.CHAT_WITH_HISTORY_STREAM)
        return self._stream(model, self.translate_turns(turns), options)

    def _require(self, capability: Capability) -> None:
        if not self.supports(capability):
            raise ProviderUnavailable(self.family, self.declined[capability])
        if not self.connected:
            raise BackendError(f"{self.family} adapter is not connected", family=self.family)

    async def _complete(
        self,
        model: ModelDescriptor,
        messages: list[dict[str, str]],
        options: GenerationOptions | None,
    ) -> GenerationResult:
        try:
            response = await llm_complete(self.route(model), messages, **self.request_params(options))
        except Exception as exc:
            raise BackendError(
                f"{self.family} request for {model.id} failed: {exc}",
                family=self.family, model_id=model.id, original=exc,
            ) from exc
        return to_result(response, model.id)

    def _stream(
        self,
        model: ModelDescriptor,
        messages: list[dict[str, str]],
        options: GenerationOptions | None,
    ) -> FragmentStream:
        source = llm_stream(self.route(model), messages, **self.request_params(options))
        return FragmentStream(source, family=self.family, model_id=model.id)
