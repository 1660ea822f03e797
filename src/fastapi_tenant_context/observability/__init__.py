"""Telemetry events and log-record metadata for the tenant lifecycle."""

from fastapi_tenant_context.observability.log_context import (
    TenantLogFilter,
    attach_metadata,
    clear_metadata,
    current_metadata,
    restore_metadata,
    tenant_log_id,
)
from fastapi_tenant_context.observability.telemetry import (
    SOURCE_ERROR,
    TENANT_CLEARED,
    TENANT_RESOLVED,
    TenantTelemetry,
    telemetry,
)

__all__ = [
    "SOURCE_ERROR",
    "TENANT_CLEARED",
    "TENANT_RESOLVED",
    "TenantLogFilter",
    "TenantTelemetry",
    "attach_metadata",
    "clear_metadata",
    "current_metadata",
    "restore_metadata",
    "telemetry",
    "tenant_log_id",
]
