"""
Intermediate Example 2 — Custom Source: API Key Authentication
===============================================================
Identify tenants by a pre-shared API key in the X-API-Key header.

Use case: machine-to-machine integrations where JWT or header slugs are
impractical.  Each tenant is assigned a hashed API key that maps to their
tenant record.

What you'll learn
-----------------
- Implementing a source (subclass BaseTenantSource, or just provide extract)
- Async sources that perform I/O
- Registering a source under an identifier so configuration can name it
- How a crashing source is skipped instead of failing the request

Run
---
    pip install "fastapi-tenant-context" "fastapi[standard]"
    uvicorn main:app --reload

Test
----
    curl http://localhost:8000/data -H "X-API-Key: key-acme-ABCDEF"
    curl http://localhost:8000/data -H "X-API-Key: key-globex-123456"

    # Unknown key → the source reports Failed("unknown_api_key") → 403
    curl http://localhost:8000/data -H "X-API-Key: wrong-key"
"""
from __future__ import annotations

import asyncio
import hashlib
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI

from fastapi_tenant_context import (
    NOT_FOUND,
    BaseTenantSource,
    Failed,
    SourceRegistry,
    Success,
    TenantContextConfig,
    TenantContextMiddleware,
)
from fastapi_tenant_context.dependencies import TenantDep

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import HTTPConnection


def _hash(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()


# Stand-in for a database table of hashed keys.
API_KEYS: dict[str, dict[str, Any]] = {
    _hash("key-acme-ABCDEF"): {"id": "acme", "plan": "enterprise"},
    _hash("key-globex-123456"): {"id": "globex", "plan": "starter"},
}


# ── Custom Source ─────────────────────────────────────────────────────────────

class ApiKeyTenantSource(BaseTenantSource):
    """Resolve the tenant record from a hashed API key."""

    source_id = "api_key"

    async def extract(self, request: HTTPConnection, options: Mapping[str, Any]):
        raw = request.headers.get(options.get("header", "x-api-key"))
        if not raw:
            return NOT_FOUND
        await asyncio.sleep(0)  # a real lookup would await the database here
        tenant = API_KEYS.get(_hash(raw))
        if tenant is None:
            return Failed("unknown_api_key")
        return Success(tenant, {"source": self.source_id})


registry = SourceRegistry.with_builtins()
registry.register("api_key", ApiKeyTenantSource)

app = FastAPI(title="API Key Tenants")
app.add_middleware(
    TenantContextMiddleware,
    config=TenantContextConfig(require_resolved=True),
    sources=["api_key", "header"],
    registry=registry,
)


@app.get("/data")
async def data(tenant: TenantDep):
    return {"tenant": tenant["id"], "plan": tenant["plan"]}
