"""Perplexity adapter: OpenAI-compatible chat completions."""

import httpx

from providerhub.adapters.base import PROBE_MAX_TOKENS, PROBE_PROMPT, ProviderAdapter
from providerhub.schemas.provider import ProviderName

# Perplexity has no model listing endpoint
KNOWN_MODELS = [
    "sonar",
    "sonar-reasoning",
    "sonar-deep-research",
    "llama-3.1-sonar-small-128k-online",
    "llama-3.1-sonar-large-128k-online",
    "llama-3.1-sonar-huge-128k-online",
    "llama-3.1-8b-instruct",
    "llama-3.1-70b-instruct",
]


class PerplexityAdapter(ProviderAdapter):
    name = ProviderName.PERPLEXITY
    label = "Perplexity"
    key_prefix = "pplx-"
    default_model = "llama-3.1-sonar-large-128k-online"
    fallback_model = "llama-3.1-sonar-small-128k-online"
    task_models = {
        "research": "llama-3.1-sonar-large-128k-online",
        "writing": "llama-3.1-sonar-large-128k-chat",
    }
    capabilities = frozenset({"text", "research"})

    async def probe(self, client: httpx.AsyncClient, api_key: str, model: str) -> httpx.Response:
        return await client.post(
            "/chat/completions",
            headers={"Authorization": f"Bearer {api_key}"},
            json={
                "model": model,
                "messages": [{"role": "user", "content": PROBE_PROMPT}],
                "max_tokens": PROBE_MAX_TOKENS,
            },
        )

    async def list_models(self, client: httpx.AsyncClient, api_key: str) -> list[str]:
        return list(KNOWN_MODELS)
