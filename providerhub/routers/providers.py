"""Provider endpoints: masked reads, key save/rotation, live tests, selection."""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from providerhub.database import get_db
from providerhub.schemas.provider import (
    KeySaveRequest,
    KeySaveResponse,
    ModelListResponse,
    ProviderListResponse,
    ProviderSettingResponse,
    ProviderSettingsUpdate,
    ProviderTestResponse,
    SelectionResponse,
    UsageRecordRequest,
    UsageResetResponse,
    UsageResponse,
)
from providerhub.services.provider_service import ProviderConfigService, get_provider_service

router = APIRouter()


@router.get("", response_model=ProviderListResponse)
async def list_providers(
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    return await service.list_providers(db)


@router.get("/usage", response_model=list[UsageResponse])
async def usage_report(
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    return await service.usage_report(db)


@router.post("/reset-monthly", response_model=UsageResetResponse)
async def reset_monthly_usage(
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    return await service.reset_monthly_usage(db)


@router.get("/capabilities", response_model=dict[str, list[str]])
async def provider_capabilities(service: ProviderConfigService = Depends(get_provider_service)):
    return service.capabilities()


@router.get("/fallback-chains", response_model=dict[str, list[str]])
async def fallback_chains(service: ProviderConfigService = Depends(get_provider_service)):
    return service.fallback_chains()


@router.get("/select", response_model=SelectionResponse)
async def select_provider(
    task: str = "default",
    preferred: str | None = None,
    capability: list[str] | None = Query(None),
    exclude: list[str] | None = Query(None),
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    return await service.select_provider(
        db,
        task,
        preferred=preferred,
        required_capabilities=capability or (),
        exclude=exclude or (),
    )


@router.get("/{provider}", response_model=ProviderSettingResponse | ProviderTestResponse)
async def get_provider(
    provider: str,
    test: bool = False,
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    if test:
        return await service.test_existing(db, provider)
    return await service.get_provider(db, provider)


@router.post("/{provider}", response_model=KeySaveResponse)
async def save_provider_key(
    provider: str,
    body: KeySaveRequest,
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    return await service.save_key(db, provider, body)


@router.patch("/{provider}", response_model=ProviderSettingResponse)
async def update_provider(
    provider: str,
    body: ProviderSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    return await service.update_settings(db, provider, body)


@router.delete("/{provider}", status_code=204)
async def delete_provider(
    provider: str,
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    await service.delete_provider(db, provider)
    return Response(status_code=204)


@router.post("/{provider}/test", response_model=ProviderTestResponse)
async def test_provider(
    provider: str,
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    return await service.test_existing(db, provider)


@router.get("/{provider}/models", response_model=ModelListResponse)
async def list_models(
    provider: str,
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    return await service.list_models(db, provider)


@router.post("/{provider}/usage", response_model=UsageResponse)
async def record_usage(
    provider: str,
    body: UsageRecordRequest,
    db: AsyncSession = Depends(get_db),
    service: ProviderConfigService = Depends(get_provider_service),
):
    return await service.record_usage(db, provider, body.amount)
