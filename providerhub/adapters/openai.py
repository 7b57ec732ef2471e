"""OpenAI adapter: chat completions API."""

import httpx

from providerhub.adapters.base import PROBE_MAX_TOKENS, PROBE_PROMPT, ProviderAdapter
from providerhub.schemas.provider import ProviderName


class OpenAIAdapter(ProviderAdapter):
    name = ProviderName.OPENAI
    label = "OpenAI"
    key_prefix = "sk-"
    default_model = "gpt-4o"
    fallback_model = "gpt-4o-mini"
    task_models = {
        "writing": "gpt-4o",
        "research": "gpt-4o",
        "ideation": "gpt-4o",
        "creative": "gpt-4o",
        "analysis": "gpt-4o",
        "image": "dall-e-3",
    }
    capabilities = frozenset({"text", "image", "research", "multimodal"})

    @staticmethod
    def _headers(api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    async def probe(self, client: httpx.AsyncClient, api_key: str, model: str) -> httpx.Response:
        return await client.post(
            "/chat/completions",
            headers=self._headers(api_key),
            json={
                "model": model,
                "messages": [{"role": "user", "content": PROBE_PROMPT}],
                "max_tokens": PROBE_MAX_TOKENS,
            },
        )

    async def list_models(self, client: httpx.AsyncClient, api_key: str) -> list[str]:
        response = await client.get("/models", headers=self._headers(api_key))
        response.raise_for_status()
        return sorted(m["id"] for m in response.json().get("data", []))
