"""
Basic Example 1 — Hello Tenant
================================
The simplest possible tenant-aware FastAPI application.

What you'll learn
-----------------
- Install fastapi-tenant-context
- Add TenantContextMiddleware with the header source
- Inject the current tenant into a route
- Attach tenant ids to every log line

Run
---
    pip install "fastapi-tenant-context"
    pip install "fastapi[standard]"
    uvicorn main:app --reload

Test
----
    # Health check (no tenant needed)
    curl http://localhost:8000/health

    # Greet acme
    curl http://localhost:8000/hello -H "X-Tenant-ID: acme"

    # Missing header → 403 {"detail": "Tenant required"}
    curl http://localhost:8000/hello
"""
import logging

from fastapi import FastAPI

from fastapi_tenant_context import TenantContextConfig, TenantContextMiddleware, TenantLogFilter
from fastapi_tenant_context.dependencies import TenantDep

# ── 1. Logging ────────────────────────────────────────────────────────────────
#
# TenantLogFilter stamps %(tenant_id)s onto every record; "-" outside requests.
#
handler = logging.StreamHandler()
handler.addFilter(TenantLogFilter())
handler.setFormatter(logging.Formatter("%(levelname)s [tenant=%(tenant_id)s] %(name)s: %(message)s"))
logging.basicConfig(level=logging.INFO, handlers=[handler])
logger = logging.getLogger("hello")

# ── 2. Configuration ──────────────────────────────────────────────────────────
#
# Every field can also come from TENANT_CONTEXT_* environment variables.
#
config = TenantContextConfig(
    require_resolved=True,
    excluded_paths=["/health", "/docs", "/openapi.json"],
)

# ── 3. App + middleware ───────────────────────────────────────────────────────

app = FastAPI(title="Hello Tenant")
app.add_middleware(TenantContextMiddleware, config=config, sources=["header"])


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/hello")
async def hello(tenant: TenantDep):
    logger.info("saying hello")
    return {"message": f"Hello, {tenant}!"}
