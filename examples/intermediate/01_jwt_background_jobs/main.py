"""
Intermediate Example 1 — JWT Claims + Background Jobs
======================================================
Resolve the tenant from a verified Bearer token and hand it to background
work as a snapshot.

What you'll learn
-----------------
- Configuring the jwt source with a secret (python-jose)
- Falling back to a header for internal callers
- Capturing a snapshot in the request and applying it in a background task
- Returning a custom response when no tenant is found

Run
---
    pip install "fastapi-tenant-context[jwt]" "fastapi[standard]"
    export JWT_SECRET=change-me-in-production
    uvicorn main:app --reload

Test
----
    TOKEN=$(python generate_token.py acme)
    curl -X POST http://localhost:8000/reports -H "Authorization: Bearer $TOKEN"

    # Tampered token → jwt source reports malformed_jwt, header fallback is tried
    curl -X POST http://localhost:8000/reports -H "Authorization: Bearer x.y.z"
"""
import logging
import os

from fastapi import BackgroundTasks, FastAPI
from fastapi.responses import JSONResponse

from fastapi_tenant_context import (
    SOURCE_ERROR,
    TenantContext,
    TenantContextConfig,
    TenantContextMiddleware,
    telemetry,
)
from fastapi_tenant_context.dependencies import TenantDep

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("reports")

JWT_SECRET = os.environ.get("JWT_SECRET", "change-me-in-production")


def on_source_error(event, payload):
    logger.warning("source %s failed: %s", payload["strategy_id"], payload["reason"])


telemetry.attach("reports-source-errors", SOURCE_ERROR, on_source_error)


def missing_tenant(request):
    return JSONResponse(
        {"error": "authentication_required", "path": request.url.path},
        status_code=401,
    )


app = FastAPI(title="Reports")
app.add_middleware(
    TenantContextMiddleware,
    config=TenantContextConfig(require_resolved=True, excluded_paths=["/health"]),
    sources=[
        ("jwt", {"secret": JWT_SECRET, "claim": "tenant_id"}),
        ("header", {"header": "x-internal-tenant"}),
    ],
    on_missing=missing_tenant,
)


def build_report(snapshot, report_id: str) -> None:
    # Written so it can move to a job queue unchanged: a worker process never
    # sees the request's context, only the snapshot passed with the job.
    with TenantContext.applied(snapshot) as tenant:
        logger.info("building report %s for %s", report_id, tenant)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/reports")
async def create_report(tenant: TenantDep, background_tasks: BackgroundTasks):
    report_id = f"{tenant}-monthly"
    background_tasks.add_task(build_report, TenantContext.snapshot(), report_id)
    return {"queued": report_id}
