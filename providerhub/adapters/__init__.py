"""Registry of the supported provider adapters."""

from providerhub.adapters.anthropic import AnthropicAdapter
from providerhub.adapters.base import ProviderAdapter
from providerhub.adapters.google import GoogleAdapter
from providerhub.adapters.openai import OpenAIAdapter
from providerhub.adapters.perplexity import PerplexityAdapter
from providerhub.schemas.provider import ProviderName

ADAPTERS: dict[ProviderName, ProviderAdapter] = {
    adapter.name: adapter
    for adapter in (OpenAIAdapter(), AnthropicAdapter(), GoogleAdapter(), PerplexityAdapter())
}


def get_adapter(provider: ProviderName) -> ProviderAdapter:
    return ADAPTERS[provider]


__all__ = ["ADAPTERS", "ProviderAdapter", "get_adapter"]
