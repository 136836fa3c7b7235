"""OpenAI chat models (GPT-4, GPT-4o, GPT-3.5)."""

from __future__ import annotations

import os
from typing import Any

from llm_workspace.providers.base import Capability, ProviderAdapter


class OpenAIAdapter(ProviderAdapter):
    """Native on every capability. Prompt-only generation goes through the
    chat endpoint as a single user message; roles map 1:1."""

    family = "openai"
    config_key = "openai"
    route_prefix = "openai/"
    capabilities = frozenset(Capability)
    declined = {}

    def _connection_params(self) -> dict[str, Any]:
        settings = self.config["providers"][self.config_key]
        api_key = os.environ.get(settings["api_key_env"])
        if not api_key:
            raise RuntimeError(f"{settings['api_key_env']} is not set")
        params: dict[str, Any] = {"api_key": api_key}
        organization = os.environ.get(settings["organization_env"])
        if organization:
            params["organization"] = organization
        return params
