"""End-to-end tests — full FastAPI request lifecycle with TenantContextMiddleware

Tests the complete pipeline:
  HTTP request → TenantContextMiddleware → resolution chain → TenantContext
  → route handler / background task → response → cleanup

No external services needed.
"""

from __future__ import annotations

import asyncio

from fastapi import BackgroundTasks, FastAPI
from httpx import ASGITransport, AsyncClient
import pytest

from fastapi_tenant_context import (
    ABSENT,
    TENANT_RESOLVED,
    TenantContext,
    TenantContextConfig,
    TenantContextMiddleware,
    TenantTelemetry,
)
from fastapi_tenant_context.dependencies import TenantDep, TenantOptionalDep

pytestmark = pytest.mark.e2e


@pytest.fixture
def events():
    return []


@pytest.fixture
def multi_source_app(events):
    """Application resolving from a header first, then the subdomain."""
    hub = TenantTelemetry()
    hub.attach("e2e", TENANT_RESOLVED, lambda event, payload: events.append(payload))

    app = FastAPI()
    app.add_middleware(
        TenantContextMiddleware,
        config=TenantContextConfig(excluded_paths=["/health"]),
        sources=[("header", {"header": "x-tenant-id"}), "subdomain"],
        telemetry=hub,
    )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/whoami")
    async def whoami(tenant: TenantOptionalDep):
        return {"tenant": tenant}

    @app.get("/slow")
    async def slow(tenant: TenantDep):
        await asyncio.sleep(0.01)
        return {"tenant": tenant, "still": TenantContext.get()}

    return app


class TestScenarioSubdomainFallback:
    async def test_header_absent_subdomain_resolves(self, multi_source_app, events):
        async with AsyncClient(
            transport=ASGITransport(app=multi_source_app),
            base_url="http://acme.example.com",
        ) as client:
            response = await client.get("/whoami")

        assert response.status_code == 200
        assert response.json() == {"tenant": "acme"}
        [payload] = events
        assert payload["tenant"] == "acme"
        assert payload["source"] == "subdomain"
        assert payload["metadata"]["source"] == "subdomain"
        assert TenantContext.current() is ABSENT

    async def test_header_takes_priority(self, multi_source_app, events):
        async with AsyncClient(
            transport=ASGITransport(app=multi_source_app),
            base_url="http://acme.example.com",
        ) as client:
            response = await client.get("/whoami", headers={"x-tenant-id": "globex"})

        assert response.json() == {"tenant": "globex"}
        assert events[0]["source"] == "header"

    async def test_excluded_path_resolves_nothing(self, multi_source_app, events):
        async with AsyncClient(
            transport=ASGITransport(app=multi_source_app),
            base_url="http://acme.example.com",
        ) as client:
            response = await client.get("/health")
        assert response.json() == {"status": "ok"}
        assert events == []


class TestScenarioRequiredTenant:
    async def test_rejected_before_application_code(self):
        reached = []

        app = FastAPI()
        app.add_middleware(
            TenantContextMiddleware,
            config=TenantContextConfig(require_resolved=True),
            sources=["header"],
            telemetry=TenantTelemetry(),
        )

        @app.get("/orders")
        async def orders():
            reached.append(True)  # pragma: no cover
            return []  # pragma: no cover

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://testserver"
        ) as client:
            response = await client.get("/orders")

        assert response.status_code == 403
        assert response.json() == {"detail": "Tenant required"}
        assert reached == []


class TestScenarioConcurrency:
    async def test_concurrent_requests_see_only_their_tenant(self, multi_source_app):
        async with AsyncClient(
            transport=ASGITransport(app=multi_source_app),
            base_url="http://testserver",
        ) as client:
            names = [f"tenant-{i}" for i in range(25)]
            responses = await asyncio.gather(
                *(client.get("/slow", headers={"x-tenant-id": name}) for name in names)
            )

        for name, response in zip(names, responses, strict=True):
            assert response.json() == {"tenant": name, "still": name}

    async def test_concurrent_units_set_distinct_tenants(self):
        async def unit(name: str) -> str:
            TenantContext.set(name)
            await asyncio.sleep(0)
            return TenantContext.get()

        assert await asyncio.gather(unit("acme"), unit("globex")) == ["acme", "globex"]


class TestBackgroundHandoff:
    async def test_snapshot_travels_with_background_task(self):
        seen = []

        def send_report(snap):
            with TenantContext.applied(snap):
                seen.append(TenantContext.get())

        app = FastAPI()
        app.add_middleware(
            TenantContextMiddleware,
            sources=[("header", {"mapper": lambda v: {"id": v, "plan": "pro"}})],
            telemetry=TenantTelemetry(),
        )

        @app.post("/reports")
        async def create_report(background_tasks: BackgroundTasks, tenant: TenantDep):
            background_tasks.add_task(send_report, TenantContext.snapshot())
            tenant["plan"] = "mutated-after-snapshot"
            return {"queued": True}

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://testserver"
        ) as client:
            response = await client.post("/reports", headers={"x-tenant-id": "acme"})

        assert response.json() == {"queued": True}
        assert seen == [{"id": "acme", "plan": "pro"}]
        assert TenantContext.current() is ABSENT
