"""Provider validator: live test calls that confirm a key authenticates."""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from providerhub.adapters import ProviderAdapter, get_adapter
from providerhub.errors import KeyRejectedError, UpstreamError
from providerhub.schemas.provider import KeyTestResult, ProviderName

logger = logging.getLogger(__name__)

# KeyTestResult.reason values
REJECTED = "rejected"
TIMEOUT = "timeout"
UNREACHABLE = "unreachable"


class ProviderValidator:
    """Dispatches validation and model-listing calls to provider adapters.

    ``transport`` is handed to every ``httpx.AsyncClient`` so tests can
    swap the live APIs for ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_urls: dict[str, str],
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_urls = base_urls
        self._timeout = timeout
        self._transport = transport

    def _client(self, provider: ProviderName) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_urls[provider.value],
            timeout=self._timeout,
            transport=self._transport,
        )

    async def test_key(
        self, provider: ProviderName, api_key: str, model: str | None = None
    ) -> KeyTestResult:
        """Return ``success=False`` (never raise) when the key does not work.

        The probe runs as its own task and is shielded: if the caller goes
        away it still finishes or times out on its own.
        """
        adapter = get_adapter(provider)
        task = asyncio.ensure_future(self._probe(adapter, api_key, model or adapter.probe_model))
        return await asyncio.shield(task)

    async def _probe(self, adapter: ProviderAdapter, api_key: str, model: str) -> KeyTestResult:
        started = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            async with self._client(adapter.name) as client:
                response = await asyncio.wait_for(
                    adapter.probe(client, api_key, model), timeout=self._timeout
                )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("%s key test timed out after %ss", adapter.label, self._timeout)
            return KeyTestResult(
                success=False,
                message=f"{adapter.label} did not respond: timed out after {self._timeout:g}s",
                model=model,
                response_time_ms=elapsed_ms(),
                reason=TIMEOUT,
            )
        except httpx.HTTPError as exc:
            logger.warning("%s key test failed to connect: %s", adapter.label, type(exc).__name__)
            return KeyTestResult(
                success=False,
                message=f"Could not reach {adapter.label} ({type(exc).__name__})",
                model=model,
                response_time_ms=elapsed_ms(),
                reason=UNREACHABLE,
            )

        if response.is_success:
            logger.info("%s key test succeeded in %dms", adapter.label, elapsed_ms())
            return KeyTestResult(
                success=True,
                message=f"{adapter.label} API key is valid",
                model=model,
                response_time_ms=elapsed_ms(),
            )

        # 5xx is an outage on the provider side, not a verdict on the key
        reason = UNREACHABLE if response.is_server_error else REJECTED
        logger.info("%s key test failed (HTTP %d, %s)", adapter.label, response.status_code, reason)
        return KeyTestResult(
            success=False,
            message=adapter.error_message(response),
            model=model,
            response_time_ms=elapsed_ms(),
            reason=reason,
        )

    async def list_models(self, provider: ProviderName, api_key: str) -> list[str]:
        adapter = get_adapter(provider)
        try:
            async with self._client(provider) as client:
                return await asyncio.wait_for(
                    adapter.list_models(client, api_key), timeout=self._timeout
                )
        except httpx.HTTPStatusError as exc:
            if exc.response.is_server_error:
                raise UpstreamError(
                    adapter.error_message(exc.response), details=f"HTTP {exc.response.status_code}"
                ) from exc
            raise KeyRejectedError(provider.value, adapter.error_message(exc.response)) from exc
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise UpstreamError(
                f"{adapter.label} did not respond: timed out after {self._timeout:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"Could not reach {adapter.label}", details=type(exc).__name__
            ) from exc
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            # 200 with a body that is not the documented model listing
            logger.warning("%s returned an unexpected model listing: %r", adapter.label, exc)
            raise UpstreamError(
                f"{adapter.label} returned an unreadable model list", details=type(exc).__name__
            ) from exc
