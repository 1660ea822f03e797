"""Shared pytest fixtures for the fastapi-tenant-context test suite.

Hierarchy
---------
_clean_context          autouse: every test starts and ends with an empty store
hub                     fresh TenantTelemetry per test
recorder                EventRecorder attached to ``hub`` for every event
mock_request            factory for MagicMock requests (headers, host, path)
asgi_app                minimal FastAPI + TenantContextMiddleware (header source)
http_client             httpx.AsyncClient → asgi_app
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

from httpx import ASGITransport, AsyncClient
import pytest
import pytest_asyncio
from starlette.datastructures import Headers

from fastapi_tenant_context.core.config import TenantContextConfig
from fastapi_tenant_context.core.context import TenantContext
from fastapi_tenant_context.middleware.tenancy import TenantContextMiddleware
from fastapi_tenant_context.observability import log_context
from fastapi_tenant_context.observability.telemetry import EVENTS, TenantTelemetry

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


#################
# Context reset #
#################


@pytest.fixture(autouse=True)
def _clean_context() -> Iterator[None]:
    TenantContext.clear_all()
    log_context.clear_metadata()
    yield
    TenantContext.clear_all()
    log_context.clear_metadata()


#############
# Telemetry #
#############


class EventRecorder:
    """Telemetry handler that keeps every ``(event, payload)`` it receives."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, event: str, payload: Any) -> None:
        self.events.append((event, dict(payload)))

    def of(self, event: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def hub() -> TenantTelemetry:
    return TenantTelemetry()


@pytest.fixture
def recorder(hub: TenantTelemetry) -> EventRecorder:
    rec = EventRecorder()
    hub.attach("test-recorder", EVENTS, rec)
    return rec


############
# Requests #
############


@pytest.fixture
def mock_request():
    """Return a factory that builds MagicMock connections."""

    def _make(
        headers: dict[str, str] | None = None,
        host: str | None = "acme.example.com",
        path: str = "/api/data",
    ) -> MagicMock:
        req = MagicMock()
        req.headers = Headers(headers=headers or {})
        req.url.hostname = host
        req.url.path = path
        return req

    return _make


##########################
# ASGI app + HTTP client #
##########################


@pytest_asyncio.fixture
async def asgi_app(hub: TenantTelemetry):
    """Return a minimal FastAPI app wrapped in TenantContextMiddleware."""
    from fastapi import FastAPI  # noqa: PLC0415

    from fastapi_tenant_context.core.context import get_current_tenant  # noqa: PLC0415

    app = FastAPI()
    app.add_middleware(
        TenantContextMiddleware,
        config=TenantContextConfig(excluded_paths=["/health"]),
        sources=["header"],
        telemetry=hub,
    )

    @app.get("/health")
    async def health():
        return {"status": "ok", "tenant": TenantContext.get_optional()}

    @app.get("/tenant")
    async def whoami():
        return {"tenant": get_current_tenant()}

    return app


@pytest_asyncio.fixture
async def http_client(asgi_app) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=asgi_app),
        base_url="http://testserver",
    ) as client:
        yield client
