"""ProviderHub configuration: loaded from environment / .env file."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="PROVIDERHUB_", extra="ignore")

    env: str = "development"
    log_level: str = "INFO"
    # SQL echo logs bound parameters, including ciphertext; keep off outside debugging
    db_echo: bool = False
    database_url: str = "sqlite+aiosqlite:///./providerhub.db"

    # Server-held password every stored key is derived from. No default:
    # encryption is refused until one is configured.
    encryption_password: str = ""

    # Outbound key validation
    validation_timeout: float = 10.0
    openai_base_url: str = "https://api.openai.com/v1"
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    google_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    perplexity_base_url: str = "https://api.perplexity.ai"

    cors_origins: list[str] = ["http://localhost:3000"]

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def provider_base_urls(self) -> dict[str, str]:
        return {
            "openai": self.openai_base_url,
            "anthropic": self.anthropic_base_url,
            "google": self.google_base_url,
            "perplexity": self.perplexity_base_url,
        }
