"""Shared fixtures: an app wired to a temp SQLite file and a fake provider API."""

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from providerhub.config import Settings
from providerhub.main import create_app
from providerhub.models.provider_setting import ProviderSetting

OPENAI_KEY = "sk-proj-valid-openai-key-0001"
OPENAI_KEY_ROTATED = "sk-proj-valid-openai-key-0002"
ANTHROPIC_KEY = "sk-ant-REDACTED"
GOOGLE_KEY = "AIzaValidGoogleKey0001"
PERPLEXITY_KEY = "pplx-valid-perplexity-key-0001"
REVOKED_KEY = "sk-proj-revoked-key-9999"

VALID_KEYS = {OPENAI_KEY, OPENAI_KEY_ROTATED, ANTHROPIC_KEY, GOOGLE_KEY, PERPLEXITY_KEY}

_REJECTIONS = {
    "api.openai.com": (401, {"error": {"message": "Incorrect API key provided.", "type": "invalid_request_error"}}),
    "api.perplexity.ai": (401, {"error": {"message": "Invalid API key", "type": "unauthorized"}}),
    "api.anthropic.com": (401, {"type": "error", "error": {"type": "authentication_error", "message": "invalid x-api-key"}}),
    "generativelanguage.googleapis.com": (
        400,
        {"error": {"code": 400, "message": "API key not valid. Please pass a valid API key.", "status": "INVALID_ARGUMENT"}},
    ),
}

_MODELS = {
    "api.openai.com": {"data": [{"id": "gpt-4o-mini"}, {"id": "gpt-4o"}]},
    "api.anthropic.com": {"data": [{"id": "claude-3-5-sonnet-20241022"}, {"id": "claude-3-5-haiku-20241022"}]},
    "generativelanguage.googleapis.com": {"models": [{"name": "models/gemini-1.5-pro-latest"}]},
}


class FakeProviderAPI:
    """Stands in for the four live provider APIs behind ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.valid_keys = set(VALID_KEYS)
        self.requests: list[httpx.Request] = []
        self.error: type[httpx.HTTPError] | None = None
        # answer every call with this 5xx status
        self.outage_status: int | None = None

    @staticmethod
    def key_of(request: httpx.Request) -> str | None:
        auth = request.headers.get("authorization", "")
        if auth.startswith("Bearer "):
            return auth.removeprefix("Bearer ")
        return request.headers.get("x-api-key") or request.headers.get("x-goog-api-key")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error("simulated failure", request=request)
        if self.outage_status is not None:
            return httpx.Response(self.outage_status, json={"error": {"message": "The server is overloaded"}})

        host = request.url.host
        if self.key_of(request) not in self.valid_keys:
            status, payload = _REJECTIONS[host]
            return httpx.Response(status, json=payload)

        if request.method == "GET" and request.url.path.endswith("/models"):
            return httpx.Response(200, json=_MODELS[host])
        return httpx.Response(200, json={"id": "probe", "choices": [{"message": {"content": "OK"}}]})


async def stored_rows(db) -> list[ProviderSetting]:
    """Read the table fresh, bypassing the session's identity map."""
    db.expire_all()
    result = await db.execute(select(ProviderSetting).order_by(ProviderSetting.provider))
    return list(result.scalars().all())


@pytest.fixture
def provider_api() -> FakeProviderAPI:
    return FakeProviderAPI()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'providerhub.db'}",
        encryption_password="test-encryption-password",
        validation_timeout=10.0,
    )


@pytest_asyncio.fixture
async def app(settings, provider_api):
    application = create_app(settings, transport=httpx.MockTransport(provider_api))
    await application.state.database.init_db()
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(app):
    async with app.state.database.sessionmaker() as session:
        yield session


@pytest.fixture
def service(app):
    return app.state.provider_service


@pytest.fixture
def secret_box(app):
    return app.state.secret_box
