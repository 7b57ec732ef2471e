"""Google Gemini adapter: generateContent API."""

import httpx

from providerhub.adapters.base import PROBE_MAX_TOKENS, PROBE_PROMPT, ProviderAdapter
from providerhub.schemas.provider import ProviderName


class GoogleAdapter(ProviderAdapter):
    name = ProviderName.GOOGLE
    label = "Google"
    key_prefix = "AIza"
    default_model = "gemini-1.5-pro-latest"
    fallback_model = "gemini-1.5-flash-latest"
    task_models = {
        "writing": "gemini-1.5-pro-latest",
        "research": "gemini-1.5-pro-latest",
        "ideation": "gemini-1.5-pro-latest",
        "image": "imagen-3.0-generate-001",
    }
    capabilities = frozenset({"text", "image", "research", "multimodal"})

    @staticmethod
    def _headers(api_key: str) -> dict[str, str]:
        # Header rather than ?key= so the key never lands in URL logs
        return {"x-goog-api-key": api_key}

    async def probe(self, client: httpx.AsyncClient, api_key: str, model: str) -> httpx.Response:
        return await client.post(
            f"/models/{model}:generateContent",
            headers=self._headers(api_key),
            json={
                "contents": [{"parts": [{"text": PROBE_PROMPT}]}],
                "generationConfig": {"maxOutputTokens": PROBE_MAX_TOKENS},
            },
        )

    async def list_models(self, client: httpx.AsyncClient, api_key: str) -> list[str]:
        response = await client.get("/models", headers=self._headers(api_key))
        response.raise_for_status()
        return [m["name"].removeprefix("models/") for m in response.json().get("models", [])]
