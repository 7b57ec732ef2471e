"""Provider configuration request/response schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from providerhub.models.provider_setting import ProviderSetting


class ProviderName(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    PERPLEXITY = "perplexity"


class _CamelRequest(BaseModel):
    # Admin UI sends camelCase; snake_case is accepted too.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeySaveRequest(_CamelRequest):
    api_key: str = ""  # plaintext: validated, then encrypted before storage
    default_model: str | None = None
    fallback_model: str | None = None
    settings: dict[str, Any] | None = None


class KeySaveResponse(BaseModel):
    success: bool
    provider: str
    message: str
    tested: bool = True
    # key is NEVER returned


class ProviderSettingsUpdate(_CamelRequest):
    default_model: str | None = None
    fallback_model: str | None = None
    task_defaults: dict[str, str] | None = None
    settings: dict[str, Any] | None = None
    active: bool | None = None
    monthly_limit: float | None = Field(None, ge=0)


class ProviderSettingResponse(BaseModel):
    provider: str
    active: bool
    default_model: str
    fallback_model: str
    task_defaults: dict[str, str]
    settings: dict[str, Any]
    last_tested: datetime | None
    test_success: bool | None
    monthly_limit: float | None
    current_usage: float
    has_api_key: bool
    is_configured: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # encrypted_key / salt are NEVER returned

    @classmethod
    def from_row(cls, row: ProviderSetting) -> ProviderSettingResponse:
        has_key = row.encrypted_key is not None
        return cls(
            provider=row.provider,
            active=row.active,
            default_model=row.default_model,
            fallback_model=row.fallback_model,
            task_defaults=row.task_defaults or {},
            settings=row.settings or {},
            last_tested=row.last_tested,
            test_success=row.test_success,
            monthly_limit=row.monthly_limit,
            current_usage=row.current_usage,
            has_api_key=has_key,
            is_configured=has_key and row.active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class ProviderListResponse(BaseModel):
    providers: list[ProviderSettingResponse]
    count: int


class KeyTestResult(BaseModel):
    """Outcome of a live validation call. Failure is a value, not an exception."""

    success: bool
    message: str
    model: str | None = None
    response_time_ms: int | None = None
    # rejected | timeout | unreachable; None on success
    reason: str | None = None


class ProviderTestResponse(KeyTestResult):
    provider: str
    error_kind: str | None = None  # key_rejected or provider_unavailable
    tested_at: datetime


class ModelListResponse(BaseModel):
    provider: str
    models: list[str]


class UsageRecordRequest(BaseModel):
    amount: float = Field(..., gt=0)


class UsageResponse(BaseModel):
    provider: str
    current_usage: float
    monthly_limit: float | None
    percentage: float | None  # None when no limit is set


class SelectionResponse(BaseModel):
    provider: str
    model: str
    task: str


class UsageResetResponse(BaseModel):
    success: bool
    message: str
    providers_reset: int
    reset_at: datetime
