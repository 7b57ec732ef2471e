"""Provider selection tests."""

import pytest

from providerhub.errors import NotFoundError, ValidationError
from providerhub.schemas.provider import ProviderName, ProviderSettingsUpdate
from providerhub.services import key_store


async def _configure(db, box, *providers: ProviderName) -> None:
    for provider in providers:
        await key_store.upsert_provider_key(db, provider, *box.encrypt(f"key-{provider.value}"))


@pytest.mark.asyncio
async def test_research_prefers_perplexity(db_session, secret_box, service):
    await _configure(db_session, secret_box, ProviderName.OPENAI, ProviderName.PERPLEXITY)
    choice = await service.select_provider(db_session, "research")
    assert choice.provider == "perplexity"
    assert choice.model == "llama-3.1-sonar-large-128k-online"
    assert choice.task == "research"


@pytest.mark.asyncio
async def test_preferred_provider_wins(db_session, secret_box, service):
    await _configure(db_session, secret_box, ProviderName.OPENAI, ProviderName.PERPLEXITY)
    choice = await service.select_provider(db_session, "research", preferred="openai")
    assert choice.provider == "openai"
    assert choice.model == "gpt-4o"


@pytest.mark.asyncio
async def test_preferred_provider_without_capability_is_passed_over(db_session, secret_box, service):
    await _configure(db_session, secret_box, ProviderName.ANTHROPIC, ProviderName.GOOGLE)
    choice = await service.select_provider(
        db_session, "writing", preferred="anthropic", required_capabilities=["image"]
    )
    assert choice.provider == "google"


@pytest.mark.asyncio
async def test_failed_test_is_skipped(db_session, secret_box, service):
    await _configure(db_session, secret_box, ProviderName.ANTHROPIC, ProviderName.OPENAI)
    await key_store.record_test_result(db_session, ProviderName.ANTHROPIC, False)

    choice = await service.select_provider(db_session, "writing")
    assert choice.provider == "openai"


@pytest.mark.asyncio
async def test_inactive_provider_is_skipped(db_session, secret_box, service):
    await _configure(db_session, secret_box, ProviderName.ANTHROPIC, ProviderName.GOOGLE)
    await key_store.update_provider_settings(
        db_session, ProviderName.ANTHROPIC, ProviderSettingsUpdate(active=False)
    )
    choice = await service.select_provider(db_session, "analysis")
    assert choice.provider == "google"
    assert choice.model == "gemini-1.5-pro-latest"


@pytest.mark.asyncio
async def test_unknown_task_uses_default_chain(db_session, secret_box, service):
    await _configure(db_session, secret_box, ProviderName.PERPLEXITY, ProviderName.OPENAI)
    choice = await service.select_provider(db_session, "summarise")
    assert choice.provider == "openai"


@pytest.mark.asyncio
async def test_task_default_overrides_model(db_session, secret_box, service):
    await _configure(db_session, secret_box, ProviderName.OPENAI)
    await key_store.update_provider_settings(
        db_session, ProviderName.OPENAI, ProviderSettingsUpdate(task_defaults={"writing": "gpt-4.1"})
    )
    choice = await service.select_provider(db_session, "writing")
    assert choice.model == "gpt-4.1"


@pytest.mark.asyncio
async def test_exclude_and_nothing_left(db_session, secret_box, service):
    await _configure(db_session, secret_box, ProviderName.OPENAI)
    with pytest.raises(NotFoundError, match="image"):
        await service.select_provider(db_session, "image", exclude=["openai"])


@pytest.mark.asyncio
async def test_unknown_capability_is_rejected(db_session, service):
    with pytest.raises(ValidationError, match="telepathy"):
        await service.select_provider(db_session, "default", required_capabilities=["telepathy"])
