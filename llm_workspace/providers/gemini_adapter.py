"""Google Gemini models through the Gemini API."""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any

from llm_workspace.errors import InvalidRequest
from llm_workspace.models import ConversationTurn
from llm_workspace.providers.base import Capability, ProviderAdapter, coalesce


class GeminiAdapter(ProviderAdapter):
    family = "google"
    config_key = "google"
    route_prefix = "gemini/"
    accepts_top_k = True
    capabilities = frozenset({
        Capability.GENERATE,
        Capability.GENERATE_STREAM,
        Capability.CHAT_WITH_HISTORY,
    })
    declined = {
        Capability.CHAT_WITH_HISTORY_STREAM:
            "streaming chat not implemented for this family yet, falls back to one-shot",
    }

    def _connection_params(self) -> dict[str, Any]:
        env = self.config["providers"][self.config_key]["api_key_env"]
        api_key = os.environ.get(env)
        if not api_key:
            raise RuntimeError(f"{env} is not set")
        return {"api_key": api_key}

    def translate_turns(self, turns: Sequence[ConversationTurn]) -> list[dict[str, str]]:
        """Gemini conversations alternate user/model and must open with the user.

        System turns become one leading system instruction; history before
        the first user turn is dropped.
        """
        system = [t.content for t in turns if t.role == "system"]
        dialogue = [{"role": t.role, "content": t.content} for t in turns if t.role != "system"]

        first_user = next((i for i, m in enumerate(dialogue) if m["role"] == "user"), None)
        if first_user is None:
            raise InvalidRequest("Gemini chat needs at least one user turn")

        messages = []
        if system:
            messages.append({"role": "system", "content": "\n\n".join(system)})
        messages.extend(coalesce(dialogue[first_user:]))
        return messages
