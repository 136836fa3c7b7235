"""Partner models (Anthropic Claude, Mistral) served through Vertex AI.

Vertex AI authenticates with service-account credentials, so this adapter is
only usable from the server execution context. One instance serves one
publisher; the router creates one per family.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import Any

from llm_workspace.models import ConversationTurn
from llm_workspace.providers.base import Capability, ProviderAdapter, coalesce

logger = logging.getLogger(__name__)

PUBLISHERS = ("anthropic", "mistral")


class VertexAdapter(ProviderAdapter):
    family = "vertex"
    config_key = "vertex"
    route_prefix = "vertex_ai/"
    privileged_only = True
    capabilities = frozenset({
        Capability.GENERATE,
        Capability.CHAT_WITH_HISTORY,
        Capability.CHAT_WITH_HISTORY_STREAM,
    })
    declined = {
        Capability.GENERATE_STREAM:
            "streaming text generation not implemented for Vertex AI models yet, "
            "falls back to one-shot",
    }

    def __init__(self, publisher: str, config: dict | None = None) -> None:
        super().__init__(config)
        if publisher not in PUBLISHERS:
            raise ValueError(f"Unknown Vertex AI publisher: {publisher!r}")
        self.family = publisher
        settings = self.config["providers"][self.config_key]
        self.project = os.environ.get(settings["project_env"])
        if not self.project:
            raise RuntimeError(f"{settings['project_env']} is not set")
        self.location = os.environ.get(settings["location_env"]) or settings["default_location"]
        logger.debug("Vertex AI %s adapter: project=%s, location=%s",
                     publisher, self.project, self.location)

    @classmethod
    def create(cls, family: str, config: dict | None = None) -> VertexAdapter:
        return cls(family, config)

    def _connection_params(self) -> dict[str, Any]:
        # Credentials come from GOOGLE_APPLICATION_CREDENTIALS / ADC inside litellm
        return {"vertex_project": self.project, "vertex_location": self.location}

    def translate_turns(self, turns: Sequence[ConversationTurn]) -> list[dict[str, str]]:
        messages = super().translate_turns(turns)
        if self.family != "anthropic":
            return messages
        # Claude on Vertex takes no system role inside the conversation
        wrapped = [
            {"role": "user", "content": f"<system>{m['content']}</system>"}
            if m["role"] == "system" else m
            for m in messages
        ]
        return coalesce(wrapped)

    def status(self) -> dict[str, Any]:
        return {**super().status(), "project": self.project, "location": self.location}
