"""Provider configuration service: the only entry point callers use.

Saving a key runs a fixed sequence: validate input, test the key live,
encrypt it, persist it. A key that fails the live test is never stored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from providerhub.adapters import ADAPTERS, get_adapter
from providerhub.errors import (
    DecryptionError,
    EncryptionError,
    KeyRejectedError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from providerhub.models.provider_setting import ProviderSetting
from providerhub.schemas.provider import (
    KeySaveRequest,
    KeySaveResponse,
    ModelListResponse,
    ProviderListResponse,
    ProviderName,
    ProviderSettingResponse,
    ProviderSettingsUpdate,
    ProviderTestResponse,
    SelectionResponse,
    UsageResetResponse,
    UsageResponse,
)
from providerhub.services import key_store
from providerhub.services.validator import REJECTED, ProviderValidator
from providerhub.utils.crypto import SecretBox

logger = logging.getLogger(__name__)

CAPABILITIES = ("text", "image", "research", "multimodal")

# Task-specific provider preference, most preferred first
FALLBACK_CHAINS: dict[str, list[str]] = {
    "research": ["perplexity", "anthropic", "google", "openai"],
    "writing": ["anthropic", "openai", "google"],
    "content": ["anthropic", "openai", "google"],
    "image": ["google", "openai"],
    "ideation": ["openai", "anthropic", "google"],
    "analysis": ["anthropic", "openai", "google"],
    "creative": ["openai", "anthropic", "google"],
    "multimodal": ["openai", "google"],
    "default": ["anthropic", "openai", "google", "perplexity"],
}


def parse_provider(value: str) -> ProviderName:
    try:
        return ProviderName(value.strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in ProviderName)
        raise ValidationError(f"Invalid provider name. Must be one of: {allowed}") from None


class ProviderConfigService:
    def __init__(self, box: SecretBox, validator: ProviderValidator) -> None:
        self._box = box
        self._validator = validator

    # ── Read paths (masked) ──────────────────────────────────────────

    async def list_providers(self, db: AsyncSession) -> ProviderListResponse:
        providers = await key_store.list_masked(db)
        return ProviderListResponse(providers=providers, count=len(providers))

    async def get_provider(self, db: AsyncSession, provider: str) -> ProviderSettingResponse:
        row = await key_store.get_provider(db, parse_provider(provider), active_only=False)
        return ProviderSettingResponse.from_row(row)

    # ── Save / rotate ────────────────────────────────────────────────

    async def save_key(
        self, db: AsyncSession, provider: str, request: KeySaveRequest
    ) -> KeySaveResponse:
        name = parse_provider(provider)
        api_key = request.api_key.strip()
        if not api_key:
            raise ValidationError("API key is required")
        if not self._box.configured:
            raise EncryptionError("Encryption password is not configured")

        adapter = get_adapter(name)
        if not adapter.looks_like_key(api_key):
            logger.warning(
                "%s key does not start with the usual '%s' prefix", adapter.label, adapter.key_prefix
            )

        result = await self._validator.test_key(name, api_key)
        if not result.success:
            logger.info("Rejected %s key: %s", name.value, result.message)
            raise KeyRejectedError(name.value, result.message)

        encrypted, salt = await asyncio.to_thread(self._box.encrypt, api_key)
        await key_store.upsert_provider_key(
            db,
            name,
            encrypted,
            salt,
            default_model=request.default_model,
            fallback_model=request.fallback_model,
            settings=request.settings,
        )
        return KeySaveResponse(
            success=True,
            provider=name.value,
            message=f"{name.value} API key saved and encrypted successfully",
        )

    # ── Test stored key ──────────────────────────────────────────────

    async def _decrypt(self, row: ProviderSetting) -> str:
        if row.encrypted_key is None:
            raise NotFoundError("Provider not configured", details=row.provider)
        if row.salt is None:
            raise DecryptionError("Stored key has no salt")
        return await asyncio.to_thread(self._box.decrypt, row.encrypted_key, row.salt)

    async def test_existing(self, db: AsyncSession, provider: str) -> ProviderTestResponse:
        """Fetch, decrypt and live-test the stored key.

        Not configured -> ``NotFoundError``; unreadable -> ``DecryptionError``;
        provider refuses the key -> ``success=False, error_kind="key_rejected"``;
        provider unreachable -> ``error_kind="provider_unavailable"`` and the
        stored test status is left alone.
        """
        name = parse_provider(provider)
        row = await key_store.get_provider(db, name)

        try:
            api_key = await self._decrypt(row)
        except DecryptionError:
            logger.error("Stored %s key could not be decrypted", name.value)
            await key_store.record_test_result(db, name, False)
            raise

        # The fallback model is the cheap chat model; the default may be an image model
        result = await self._validator.test_key(name, api_key, row.fallback_model or None)

        error_kind = None
        if result.success or result.reason == REJECTED:
            await key_store.record_test_result(db, name, result.success)
            if not result.success:
                error_kind = KeyRejectedError.kind
        else:
            # An outage says nothing about the key; keep the last verdict
            logger.warning("Could not test %s key: %s", name.value, result.message)
            error_kind = UpstreamError.kind

        return ProviderTestResponse(
            provider=name.value,
            success=result.success,
            message=result.message,
            model=result.model,
            response_time_ms=result.response_time_ms,
            reason=result.reason,
            error_kind=error_kind,
            tested_at=datetime.now(timezone.utc),
        )

    async def get_api_key(self, db: AsyncSession, provider: str) -> str:
        """Decrypted key for in-process callers only: never expose via API."""
        row = await key_store.get_provider(db, parse_provider(provider))
        return await self._decrypt(row)

    async def list_models(self, db: AsyncSession, provider: str) -> ModelListResponse:
        name = parse_provider(provider)
        api_key = await self.get_api_key(db, name.value)
        models = await self._validator.list_models(name, api_key)
        return ModelListResponse(provider=name.value, models=models)

    # ── Settings, usage, delete ──────────────────────────────────────

    async def update_settings(
        self, db: AsyncSession, provider: str, data: ProviderSettingsUpdate
    ) -> ProviderSettingResponse:
        row = await key_store.update_provider_settings(db, parse_provider(provider), data)
        return ProviderSettingResponse.from_row(row)

    async def delete_provider(self, db: AsyncSession, provider: str) -> None:
        await key_store.delete_provider(db, parse_provider(provider))

    async def record_usage(self, db: AsyncSession, provider: str, amount: float) -> UsageResponse:
        return await key_store.record_usage(db, parse_provider(provider), amount)

    async def usage_report(self, db: AsyncSession) -> list[UsageResponse]:
        return await key_store.list_usage(db)

    async def reset_monthly_usage(self, db: AsyncSession) -> UsageResetResponse:
        count = await key_store.reset_usage(db)
        return UsageResetResponse(
            success=True,
            message="Monthly usage counters reset successfully",
            providers_reset=count,
            reset_at=datetime.now(timezone.utc),
        )

    # ── Static catalogue ─────────────────────────────────────────────

    def capabilities(self) -> dict[str, list[str]]:
        return {name.value: sorted(adapter.capabilities) for name, adapter in ADAPTERS.items()}

    def fallback_chains(self) -> dict[str, list[str]]:
        return {task: list(chain) for task, chain in FALLBACK_CHAINS.items()}

    # ── Selection ────────────────────────────────────────────────────

    async def select_provider(
        self,
        db: AsyncSession,
        task_type: str,
        *,
        preferred: str | None = None,
        required_capabilities: Iterable[str] = (),
        exclude: Iterable[str] = (),
    ) -> SelectionResponse:
        """Pick a provider and model for *task_type*.

        Order: preferred provider, then the task's fallback chain, then
        any other usable provider. Providers whose last test failed are
        skipped.
        """
        required = tuple(required_capabilities)
        unknown = [cap for cap in required if cap not in CAPABILITIES]
        if unknown:
            raise ValidationError(f"Unknown capabilities: {', '.join(unknown)}")
        excluded = {parse_provider(p).value for p in exclude}
        preferred_name = parse_provider(preferred).value if preferred else None

        candidates: dict[str, ProviderSetting] = {}
        for row in await key_store.list_active(db):
            if row.provider in excluded:
                continue
            if row.last_tested is not None and row.test_success is False:
                logger.warning("Skipping provider %s due to failed test", row.provider)
                continue
            candidates[row.provider] = row

        order: list[str] = [preferred_name] if preferred_name else []
        order += FALLBACK_CHAINS.get(task_type, FALLBACK_CHAINS["default"])
        order += sorted(candidates)

        for name in order:
            row = candidates.get(name)
            if row is None:
                continue
            adapter = get_adapter(ProviderName(name))
            if not adapter.supports(required):
                if name == preferred_name:
                    logger.warning("Preferred provider %s cannot serve %s", name, task_type)
                continue
            model = (
                (row.task_defaults or {}).get(task_type)
                or row.default_model
                or adapter.model_for_task(task_type)
            )
            return SelectionResponse(provider=name, model=model, task=task_type)

        raise NotFoundError(f"No suitable provider available for task: {task_type}")


def get_provider_service(request: Request) -> ProviderConfigService:
    return request.app.state.provider_service
