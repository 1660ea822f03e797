"""Tenant extraction sources and the resolution chain.

Built-in sources
----------------
:class:`HeaderTenantSource` (``"header"``)
    Read a named HTTP header (default: ``x-tenant-id``).

:class:`SubdomainTenantSource` (``"subdomain"``)
    Pick a label of the request host (``acme.example.com`` → ``"acme"``).

:class:`JWTTenantSource` (``"jwt"``)
    Read a claim of a verified Bearer JWT.

Custom sources
--------------
Subclass :class:`BaseTenantSource` (or implement ``extract`` on any object)
and either pass it to :class:`ResolutionChain` directly or register it on a
:class:`SourceRegistry` under an identifier.
"""

from fastapi_tenant_context.resolution.base import BaseTenantSource
from fastapi_tenant_context.resolution.chain import ResolutionChain
from fastapi_tenant_context.resolution.header import HeaderTenantSource
from fastapi_tenant_context.resolution.jwt import JWTTenantSource
from fastapi_tenant_context.resolution.registry import SourceRegistry
from fastapi_tenant_context.resolution.subdomain import SubdomainTenantSource

__all__ = [
    "BaseTenantSource",
    "HeaderTenantSource",
    "JWTTenantSource",
    "ResolutionChain",
    "SourceRegistry",
    "SubdomainTenantSource",
]
