"""
Basic Example 2 — Subdomain Resolution
========================================
Identify the tenant by the first label of the host name, with a header
fallback for local development.

    acme.myapp.com   → "acme"
    globex.myapp.com → "globex"
    www.myapp.com    → excluded, falls through to the header source

What you'll learn
-----------------
- Ordering sources: the first one that finds a tenant wins
- Excluding marketing subdomains
- Observing which source resolved each request via telemetry

Run
---
    pip install "fastapi-tenant-context" "fastapi[standard]"
    uvicorn main:app --reload

Test
----
    curl http://localhost:8000/whoami -H "Host: acme.myapp.com"
    curl http://localhost:8000/whoami -H "Host: www.myapp.com" -H "X-Tenant-ID: globex"
    curl http://localhost:8000/whoami        # → {"tenant": null}
"""
import logging

from fastapi import FastAPI

from fastapi_tenant_context import TENANT_RESOLVED, TenantContextMiddleware, telemetry
from fastapi_tenant_context.dependencies import TenantOptionalDep

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("subdomain-demo")


def log_resolution(event, payload):
    logger.info("tenant %r resolved by %s", payload["tenant"], payload["source"])


telemetry.attach("demo-log", TENANT_RESOLVED, log_resolution)

app = FastAPI(title="Subdomain Resolution")
app.add_middleware(
    TenantContextMiddleware,
    sources=[
        ("subdomain", {"exclude_subdomains": ["www", "api"]}),
        ("header", {"header": "x-tenant-id"}),
    ],
)


@app.get("/whoami")
async def whoami(tenant: TenantOptionalDep):
    return {"tenant": tenant}
