"""Provider key store: one encrypted-key row per provider.

Plain async functions over an ``AsyncSession``. Any database failure is
rolled back and surfaces as ``StorageError``; nothing is partially applied.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from providerhub.adapters import get_adapter
from providerhub.errors import NotFoundError, StorageError, ValidationError
from providerhub.models.provider_setting import ProviderSetting
from providerhub.schemas.provider import (
    ProviderName,
    ProviderSettingResponse,
    ProviderSettingsUpdate,
    UsageResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_GENERATION_SETTINGS: dict[str, Any] = {"temperature": 0.7, "max_tokens": 4000}

_UPSERT_DIALECTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@asynccontextmanager
async def _storage(db: AsyncSession, action: str) -> AsyncIterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        await db.rollback()
        # exc.orig carries the driver message without bound parameters
        reason = str(getattr(exc, "orig", None) or type(exc).__name__)
        logger.error("Storage failure while %s: %s", action, reason)
        raise StorageError(f"Storage unavailable while {action}", details=reason) from exc


async def _fetch(db: AsyncSession, provider: ProviderName) -> ProviderSetting | None:
    stmt = (
        select(ProviderSetting)
        .where(ProviderSetting.provider == provider.value)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def upsert_provider_key(
    db: AsyncSession,
    provider: ProviderName,
    encrypted_key: str,
    salt: str,
    *,
    default_model: str | None = None,
    fallback_model: str | None = None,
    task_defaults: dict[str, str] | None = None,
    settings: dict[str, Any] | None = None,
    active: bool = True,
) -> ProviderSetting:
    """Insert or rotate the key for *provider* in a single statement.

    The row is marked as freshly tested: callers only get here after the
    key passed live validation.
    """
    dialect = db.bind.dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise StorageError(f"Upsert is not supported on the '{dialect}' dialect")

    adapter = get_adapter(provider)
    now = _utcnow()
    merged_settings = {**DEFAULT_GENERATION_SETTINGS, **(settings or {})}

    stmt = insert(ProviderSetting).values(
        provider=provider.value,
        encrypted_key=encrypted_key,
        salt=salt,
        active=active,
        default_model=default_model or adapter.default_model,
        fallback_model=fallback_model or adapter.fallback_model,
        task_defaults=task_defaults if task_defaults is not None else dict(adapter.task_models),
        settings=merged_settings,
        last_tested=now,
        test_success=True,
        key_updated_at=now,
        current_usage=0.0,
    )

    # Rotation keeps existing model choices unless the caller overrides them
    on_conflict: dict[str, Any] = {
        "encrypted_key": stmt.excluded.encrypted_key,
        "salt": stmt.excluded.salt,
        "active": stmt.excluded.active,
        "last_tested": stmt.excluded.last_tested,
        "test_success": stmt.excluded.test_success,
        "key_updated_at": stmt.excluded.key_updated_at,
        "updated_at": func.now(),
    }
    if default_model:
        on_conflict["default_model"] = stmt.excluded.default_model
    if fallback_model:
        on_conflict["fallback_model"] = stmt.excluded.fallback_model
    if task_defaults is not None:
        on_conflict["task_defaults"] = stmt.excluded.task_defaults

    async with _storage(db, f"saving {provider.value} key"):
        existing = await _fetch(db, provider) if settings else None
        if existing is not None:
            # Overrides merge onto stored settings, as PATCH does
            on_conflict["settings"] = {**(existing.settings or {}), **settings}

        stmt = stmt.on_conflict_do_update(index_elements=[ProviderSetting.provider], set_=on_conflict)
        await db.execute(stmt)
        await db.commit()
        row = await _fetch(db, provider)

    logger.info("Stored encrypted key for provider %s", provider.value)
    assert row is not None
    return row


async def get_provider(
    db: AsyncSession, provider: ProviderName, *, active_only: bool = True
) -> ProviderSetting:
    async with _storage(db, f"reading {provider.value}"):
        row = await _fetch(db, provider)
    if row is None or (active_only and not row.active):
        raise NotFoundError("Provider not configured", details=provider.value)
    return row


async def list_masked(db: AsyncSession) -> list[ProviderSettingResponse]:
    async with _storage(db, "listing providers"):
        result = await db.execute(select(ProviderSetting).order_by(ProviderSetting.provider))
        rows = list(result.scalars().all())
    return [ProviderSettingResponse.from_row(row) for row in rows]


async def list_active(db: AsyncSession) -> list[ProviderSetting]:
    stmt = (
        select(ProviderSetting)
        .where(ProviderSetting.active.is_(True), ProviderSetting.encrypted_key.is_not(None))
        .order_by(ProviderSetting.provider)
    )
    async with _storage(db, "listing active providers"):
        result = await db.execute(stmt)
        return list(result.scalars().all())


async def record_test_result(db: AsyncSession, provider: ProviderName, success: bool) -> None:
    stmt = (
        update(ProviderSetting)
        .where(ProviderSetting.provider == provider.value)
        .values(last_tested=_utcnow(), test_success=success, updated_at=func.now())
    )
    async with _storage(db, f"recording {provider.value} test result"):
        await db.execute(stmt)
        await db.commit()


async def update_provider_settings(
    db: AsyncSession, provider: ProviderName, data: ProviderSettingsUpdate
) -> ProviderSetting:
    row = await get_provider(db, provider, active_only=False)

    if data.active and row.encrypted_key is None:
        raise ValidationError("Cannot activate a provider without an API key")

    if data.default_model is not None:
        row.default_model = data.default_model
    if data.fallback_model is not None:
        row.fallback_model = data.fallback_model
    if data.task_defaults is not None:
        row.task_defaults = dict(data.task_defaults)
    if data.settings is not None:
        row.settings = {**(row.settings or {}), **data.settings}
    if data.active is not None:
        row.active = data.active
    if "monthly_limit" in data.model_fields_set:
        row.monthly_limit = data.monthly_limit

    async with _storage(db, f"updating {provider.value} settings"):
        await db.commit()
        await db.refresh(row)
    return row


def _usage(row: ProviderSetting) -> UsageResponse:
    percentage = None
    if row.monthly_limit:
        percentage = round(row.current_usage / row.monthly_limit * 100, 2)
    return UsageResponse(
        provider=row.provider,
        current_usage=row.current_usage,
        monthly_limit=row.monthly_limit,
        percentage=percentage,
    )


async def record_usage(db: AsyncSession, provider: ProviderName, amount: float) -> UsageResponse:
    """Add *amount* to the provider's running total. Limits are informational only."""
    stmt = (
        update(ProviderSetting)
        .where(ProviderSetting.provider == provider.value)
        .values(current_usage=ProviderSetting.current_usage + amount)
    )
    async with _storage(db, f"recording {provider.value} usage"):
        result = await db.execute(stmt)
        if result.rowcount == 0:
            await db.rollback()
            raise NotFoundError("Provider not configured", details=provider.value)
        await db.commit()
        row = await _fetch(db, provider)

    assert row is not None
    if row.monthly_limit and row.current_usage > row.monthly_limit:
        logger.warning(
            "Provider %s is over its monthly limit (%.2f / %.2f)",
            provider.value, row.current_usage, row.monthly_limit,
        )
    return _usage(row)


async def list_usage(db: AsyncSession) -> list[UsageResponse]:
    async with _storage(db, "reading usage"):
        result = await db.execute(
            select(ProviderSetting)
            .order_by(ProviderSetting.provider)
            .execution_options(populate_existing=True)
        )
        return [_usage(row) for row in result.scalars().all()]


async def reset_usage(db: AsyncSession) -> int:
    """Zero every provider's running total at the start of a billing month."""
    stmt = update(ProviderSetting).values(current_usage=0.0, updated_at=func.now())
    async with _storage(db, "resetting monthly usage"):
        result = await db.execute(stmt)
        await db.commit()
    logger.info("Reset monthly usage for %d providers", result.rowcount)
    return result.rowcount


async def delete_provider(db: AsyncSession, provider: ProviderName) -> None:
    stmt = delete(ProviderSetting).where(ProviderSetting.provider == provider.value)
    async with _storage(db, f"deleting {provider.value}"):
        result = await db.execute(stmt)
        if result.rowcount == 0:
            await db.rollback()
            raise NotFoundError("Provider not configured", details=provider.value)
        await db.commit()
    logger.info("Deleted configuration for provider %s", provider.value)
