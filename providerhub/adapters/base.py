"""Abstract base class for LLM provider adapters.

Each provider is one subclass: it knows its request shapes, its model
defaults and what kinds of tasks it can serve. Adding a provider means
adding one adapter and registering it in ``providerhub.adapters``.
"""

from abc import ABC, abstractmethod
from typing import ClassVar

import httpx

from providerhub.schemas.provider import ProviderName

# Sent with every validation call; answers are capped at a few tokens.
PROBE_PROMPT = 'Test connection. Please respond with "OK".'
PROBE_MAX_TOKENS = 5


class ProviderAdapter(ABC):
    """Contract that every provider variant must satisfy."""

    name: ClassVar[ProviderName]
    label: ClassVar[str]
    key_prefix: ClassVar[str] = ""
    default_model: ClassVar[str]
    fallback_model: ClassVar[str]
    task_models: ClassVar[dict[str, str]] = {}
    capabilities: ClassVar[frozenset[str]] = frozenset({"text"})

    @property
    def probe_model(self) -> str:
        """Cheapest model, used when validating a key."""
        return self.fallback_model

    def model_for_task(self, task_type: str) -> str:
        return self.task_models.get(task_type, self.default_model)

    def supports(self, capabilities: list[str] | tuple[str, ...]) -> bool:
        return all(cap in self.capabilities for cap in capabilities)

    def looks_like_key(self, api_key: str) -> bool:
        return api_key.startswith(self.key_prefix)

    @abstractmethod
    async def probe(self, client: httpx.AsyncClient, api_key: str, model: str) -> httpx.Response:
        """Issue the cheapest authenticated request and return the raw response."""

    @abstractmethod
    async def list_models(self, client: httpx.AsyncClient, api_key: str) -> list[str]:
        """Return model ids available to *api_key*. Raises ``httpx.HTTPStatusError``."""

    def error_message(self, response: httpx.Response) -> str:
        """Pull the provider's own error text out of a failed response."""
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
            if payload.get("message"):
                return str(payload["message"])
        return f"{self.label} returned HTTP {response.status_code}"
