"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from providerhub.config import Settings
from providerhub.database import Database
from providerhub.errors import ProviderHubError
from providerhub.routers import providers
from providerhub.services.provider_service import ProviderConfigService
from providerhub.services.validator import ProviderValidator
from providerhub.utils.crypto import SecretBox

logger = logging.getLogger(__name__)


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    # Request/response lines from httpx would include provider URLs on every test call
    logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await app.state.database.init_db()

    box: SecretBox = app.state.secret_box
    if not box.configured:
        logger.warning("PROVIDERHUB_ENCRYPTION_PASSWORD is not set: saving keys is disabled")
    elif box.self_test():
        logger.info("Encryption service initialized successfully")
    else:
        logger.error("Encryption self-test failed")

    yield

    # Shutdown
    await app.state.database.dispose()


def _error_body(settings: Settings, error: str, kind: str, details: str | None) -> dict:
    body = {"error": error, "kind": kind}
    if details and not settings.is_production:
        body["details"] = details
    return body


def create_app(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the application from an explicit settings object.

    ``transport`` replaces the network for outbound provider calls (tests).
    """
    settings = settings or Settings()
    _configure_logging(settings)

    app = FastAPI(
        title="ProviderHub",
        description="Encrypted API-key storage and validation for LLM providers",
        version="0.1.0",
        lifespan=lifespan,
    )

    box = SecretBox(settings.encryption_password)
    validator = ProviderValidator(
        settings.provider_base_urls, timeout=settings.validation_timeout, transport=transport
    )
    app.state.settings = settings
    app.state.database = Database(settings.database_url, echo=settings.db_echo)
    app.state.secret_box = box
    app.state.provider_service = ProviderConfigService(box, validator)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ProviderHubError)
    async def provider_error_handler(request: Request, exc: ProviderHubError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.kind)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(settings, exc.message, exc.kind, exc.details),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body(settings, "Internal server error", "internal_error", type(exc).__name__),
        )

    # Mount routers
    app.include_router(providers.router, prefix="/api/providers", tags=["providers"])

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "service": "providerhub",
            "encryption": "configured" if box.configured else "missing_password",
        }

    return app


app = create_app()
