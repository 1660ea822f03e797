"""FastAPI dependency helpers for reading the request's tenant.

Annotated shorthand::

    from fastapi_tenant_context.dependencies import TenantDep, TenantOptionalDep

    @app.get("/orders")
    async def list_orders(tenant: TenantDep):
        ...

    @app.get("/landing")
    async def landing(tenant: TenantOptionalDep):
        return {"tenant": tenant}

Routes that store tenants under a non-default key build their own dependency
with :func:`make_tenant_dependency`.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends

from fastapi_tenant_context.core.context import (
    TenantContext,
    get_current_tenant,
    get_current_tenant_optional,
)

##################################################
# Re-export context dependencies for convenience #
##################################################

#: Annotated type alias for the current tenant dependency.
#: Use in route function signatures: ``tenant: TenantDep``
TenantDep = Annotated[Any, Depends(get_current_tenant)]

#: Annotated type alias for the optional tenant dependency.
#: Use when some routes serve both anonymous and tenant-scoped requests.
TenantOptionalDep = Annotated[Any, Depends(get_current_tenant_optional)]


####################################
# Closure-based dependency factory #
####################################


def make_tenant_dependency(key: str, *, required: bool = True) -> Any:
    """Create a FastAPI dependency that reads the tenant stored under *key*.

    Args:
        key: Context namespace key the middleware was configured with.
        required: When ``True`` the dependency raises
            :class:`~fastapi_tenant_context.core.exceptions.TenantNotFoundError`
            if nothing is stored; otherwise it returns ``None``.

    Returns:
        A plain function suitable for use with ``Depends``.

    Example::

        get_org = make_tenant_dependency("org")

        @app.get("/reports")
        async def reports(org: Annotated[Any, Depends(get_org)]):
            ...
    """

    def _get_tenant() -> Any:
        if required:
            return TenantContext.get(key)
        return TenantContext.get_optional(key)

    return _get_tenant


__all__ = [
    "TenantDep",
    "TenantOptionalDep",
    "get_current_tenant",
    "get_current_tenant_optional",
    "make_tenant_dependency",
]
