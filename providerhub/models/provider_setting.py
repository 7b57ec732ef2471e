"""ProviderSetting ORM model: one row per LLM provider with its encrypted key."""

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, Float, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from providerhub.database import Base


class ProviderSetting(Base):
    __tablename__ = "provider_settings"
    __table_args__ = (
        CheckConstraint("NOT active OR encrypted_key IS NOT NULL", name="ck_active_requires_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    provider: Mapped[str] = mapped_column(String(20), unique=True)  # openai|anthropic|google|perplexity
    encrypted_key: Mapped[str | None] = mapped_column(Text, nullable=True)  # b64(iv):b64(ct||tag)
    salt: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(default=False)
    default_model: Mapped[str] = mapped_column(String(100), default="")
    fallback_model: Mapped[str] = mapped_column(String(100), default="")
    task_defaults: Mapped[dict] = mapped_column(JSON, default=dict)  # task type -> model
    settings: Mapped[dict] = mapped_column(JSON, default=dict)
    last_tested: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    test_success: Mapped[bool | None] = mapped_column(nullable=True)
    key_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    monthly_limit: Mapped[float | None] = mapped_column(Float, nullable=True)
    current_usage: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )
