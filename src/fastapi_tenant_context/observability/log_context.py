"""Tenant metadata for standard-library log records.

While a tenant is set for a request, the middleware attaches a small
metadata mapping to the current context.  :class:`TenantLogFilter` copies it
onto every :class:`logging.LogRecord`, so formatters can reference
``%(tenant_id)s`` without any call site passing it explicitly::

    handler = logging.StreamHandler()
    handler.addFilter(TenantLogFilter())
    handler.setFormatter(logging.Formatter("%(levelname)s [%(tenant_id)s] %(message)s"))

Records emitted outside a tenant-aware request get ``tenant_id = "-"``.

The metadata lives in its own :class:`~contextvars.ContextVar`, isolated per
asyncio task and per thread exactly like the tenant store.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextvars import ContextVar
from typing import Any

_log_metadata_ctx: ContextVar[Mapping[str, Any] | None] = ContextVar(
    "tenant_log_metadata", default=None
)

#: Placeholder written to records when no tenant metadata is attached.
NO_TENANT = "-"


def tenant_log_id(tenant: Any) -> Any:
    """Return a compact identifier for *tenant* suitable for a log line.

    Strings and integers are used as-is; mappings contribute their ``id``
    entry and objects their ``id`` attribute.  Anything else falls back to
    ``repr``.
    """
    if isinstance(tenant, (str, int)) and not isinstance(tenant, bool):
        return tenant
    if isinstance(tenant, Mapping) and tenant.get("id") is not None:
        return tenant["id"]
    tenant_id = getattr(tenant, "id", None)
    if tenant_id is not None and not callable(tenant_id):
        return tenant_id
    return repr(tenant)


def attach_metadata(tenant: Any, *, include_full_tenant: bool = False) -> None:
    """Attach log metadata for *tenant* to the current context.

    Args:
        tenant: The resolved tenant.
        include_full_tenant: Also expose the whole tenant as ``record.tenant``.
    """
    metadata: dict[str, Any] = {"tenant_id": tenant_log_id(tenant)}
    if include_full_tenant:
        metadata["tenant"] = tenant
    _log_metadata_ctx.set(metadata)


def clear_metadata() -> None:
    """Remove tenant log metadata from the current context."""
    _log_metadata_ctx.set(None)


def current_metadata() -> dict[str, Any]:
    """Return a copy of the tenant log metadata in the current context."""
    metadata = _log_metadata_ctx.get()
    return dict(metadata) if metadata is not None else {}


def restore_metadata(metadata: Mapping[str, Any] | None) -> None:
    """Reinstall metadata previously read with :func:`current_metadata`."""
    _log_metadata_ctx.set(dict(metadata) if metadata else None)


class TenantLogFilter(logging.Filter):
    """Logging filter that stamps tenant metadata onto each record.

    Never drops records.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        metadata = _log_metadata_ctx.get()
        if metadata is None:
            record.tenant_id = NO_TENANT
            return True
        for key, value in metadata.items():
            setattr(record, key, value)
        return True


__all__ = [
    "NO_TENANT",
    "TenantLogFilter",
    "attach_metadata",
    "clear_metadata",
    "current_metadata",
    "restore_metadata",
    "tenant_log_id",
]
