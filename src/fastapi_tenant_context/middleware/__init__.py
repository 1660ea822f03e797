"""ASGI middleware for per-request tenant resolution and context scoping."""

from fastapi_tenant_context.middleware.tenancy import TenantContextMiddleware

__all__ = ["TenantContextMiddleware"]
