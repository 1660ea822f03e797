"""Core domain layer: types, configuration, context store, and exceptions."""

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
    ExtractionOutcome,
    Failed,
    InvalidSnapshot,
    NotFound,
    Resolution,
    Snapshot,
    SourceConfig,
    Success,
    TenantSource,
)

__all__ = [
    "ABSENT",
    "DEFAULT_KEY",
    "NOT_FOUND",
    "ConfigurationError",
    "ExtractionOutcome",
    "Failed",
    "InvalidSnapshot",
    "NotFound",
    "Resolution",
    "Snapshot",
    "SourceConfig",
    "SourceFaultError",
    "Success",
    "TenancyError",
    "TenantContext",
    "TenantContextConfig",
    "TenantNotFoundError",
    "TenantSource",
    "get_current_tenant",
    "get_current_tenant_optional",
]
