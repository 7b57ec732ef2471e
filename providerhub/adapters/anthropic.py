"""Anthropic adapter: messages API."""

import httpx

from providerhub.adapters.base import PROBE_MAX_TOKENS, PROBE_PROMPT, ProviderAdapter
from providerhub.schemas.provider import ProviderName

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(ProviderAdapter):
    name = ProviderName.ANTHROPIC
    label = "Anthropic"
    key_prefix = "sk-ant-"
    default_model = "claude-3-5-sonnet-20241022"
    fallback_model = "claude-3-5-haiku-20241022"
    task_models = {
        "writing": "claude-3-5-sonnet-20241022",
        "research": "claude-3-5-sonnet-20241022",
        "ideation": "claude-3-5-sonnet-20241022",
        "creative": "claude-3-5-sonnet-20241022",
        "analysis": "claude-3-5-sonnet-20241022",
    }
    capabilities = frozenset({"text", "research"})

    @staticmethod
    def _headers(api_key: str) -> dict[str, str]:
        return {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION}

    async def probe(self, client: httpx.AsyncClient, api_key: str, model: str) -> httpx.Response:
        return await client.post(
            "/messages",
            headers=self._headers(api_key),
            json={
                "model": model,
                "max_tokens": PROBE_MAX_TOKENS,
                "messages": [{"role": "user", "content": PROBE_PROMPT}],
            },
        )

    async def list_models(self, client: httpx.AsyncClient, api_key: str) -> list[str]:
        response = await client.get("/models", headers=self._headers(api_key))
        response.raise_for_status()
        return [m["id"] for m in response.json().get("data", [])]
