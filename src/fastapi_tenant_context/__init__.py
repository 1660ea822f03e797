"""fastapi-tenant-context — request-scoped tenant context for FastAPI.

This package resolves the tenant of each inbound request from an ordered,
fail-open chain of sources (header, subdomain, JWT claim, custom), keeps it
in an async-safe context store for exactly the lifetime of the request, and
lets the context travel to background work as an immutable snapshot.

Quick start
-----------
.. code-block:: python

    from fastapi import FastAPI
    from fastapi_tenant_context import TenantContextConfig, TenantContextMiddleware
    from fastapi_tenant_context.dependencies import TenantDep

    app = FastAPI()
    app.add_middleware(
        TenantContextMiddleware,
        config=TenantContextConfig(require_resolved=True),
        sources=[("header", {"header": "x-tenant-id"}), "subdomain"],
    )

    @app.get("/orders")
    async def list_orders(tenant: TenantDep):
        return {"tenant": tenant}

Background work
---------------
.. code-block:: python

    snap = TenantContext.snapshot()
    background_tasks.add_task(send_report, snap)

    def send_report(snap):
        with TenantContext.applied(snap):
            ...

Public surface
--------------
The symbols exported below form the **stable public API**.  Anything not
listed here is an implementation detail and may change between minor versions.

Optional extras
---------------
HMAC verification of JWTs without a custom verifier requires
``pip install fastapi-tenant-context[jwt]`` (python-jose).  The ``jwt``
source is always importable; without the extra and without a verifier it
reports ``no_verifier``.
"""

from fastapi_tenant_context.core.config import TenantContextConfig
from fastapi_tenant_context.core.context import (
    TenantContext,
    get_current_tenant,
    get_current_tenant_optional,
)
from fastapi_tenant_context.core.exceptions import (
    ConfigurationError,
    SourceFaultError,
    TenancyError,
    TenantNotFoundError,
)
from fastapi_tenant_context.core.types import (
    ABSENT,
    DEFAULT_KEY,
    NOT_FOUND,
    Failed,
    InvalidSnapshot,
    NotFound,
    Resolution,
    Snapshot,
    SourceConfig,
    Success,
    TenantSource,
)
from fastapi_tenant_context.middleware.tenancy import TenantContextMiddleware
from fastapi_tenant_context.observability.log_context import TenantLogFilter
from fastapi_tenant_context.observability.telemetry import (
    SOURCE_ERROR,
    TENANT_CLEARED,
    TENANT_RESOLVED,
    TenantTelemetry,
    telemetry,
)
from fastapi_tenant_context.resolution.base import BaseTenantSource
from fastapi_tenant_context.resolution.chain import ResolutionChain
from fastapi_tenant_context.resolution.header import HeaderTenantSource
from fastapi_tenant_context.resolution.jwt import JWTTenantSource
from fastapi_tenant_context.resolution.registry import SourceRegistry
from fastapi_tenant_context.resolution.subdomain import SubdomainTenantSource

try:
    from importlib.metadata import version as _pkg_version
    __version__: str = _pkg_version("fastapi-tenant-context")
except Exception:  # pragma: no cover - not installed
    __version__ = "0.0.0.dev0"

__all__ = [  # NOQA
    # Version
    "__version__",
    # Configuration
    "TenantContextConfig",
    # Domain types
    "ABSENT",
    "DEFAULT_KEY",
    "NOT_FOUND",
    "Failed",
    "InvalidSnapshot",
    "NotFound",
    "Resolution",
    "Snapshot",
    "SourceConfig",
    "Success",
    "TenantSource",
    # Context
    "TenantContext",
    "get_current_tenant",
    "get_current_tenant_optional",
    # Exceptions
    "ConfigurationError",
    "SourceFaultError",
    "TenancyError",
    "TenantNotFoundError",
    # Middleware
    "TenantContextMiddleware",
    # Sources
    "BaseTenantSource",
    "HeaderTenantSource",
    "JWTTenantSource",
    "ResolutionChain",
    "SourceRegistry",
    "SubdomainTenantSource",
    # Observability
    "SOURCE_ERROR",
    "TENANT_CLEARED",
    "TENANT_RESOLVED",
    "TenantLogFilter",
    "TenantTelemetry",
    "telemetry",
]
