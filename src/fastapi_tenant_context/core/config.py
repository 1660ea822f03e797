"""Configuration management for fastapi-tenant-context.

``TenantContextConfig`` is a ``pydantic_settings.BaseSettings`` model that
reads its values from environment variables (prefix ``TENANT_CONTEXT_``), an
optional ``.env`` file, or explicit keyword arguments.

Environment variables
---------------------
Every field can be overridden with ``TENANT_CONTEXT_<FIELD_NAME_UPPER>``::

    TENANT_CONTEXT_SOURCES='["header", "subdomain"]'
    TENANT_CONTEXT_REQUIRE_RESOLVED=true
    TENANT_CONTEXT_REJECT_STATUS_CODE=403
    TENANT_CONTEXT_EXCLUDED_PATHS='["/health"]'

Sources that need callables (a JWT verifier, a header mapper) or custom
implementations are passed to the middleware directly; the ``sources`` field
only holds registry identifiers.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fastapi_tenant_context.core.types import DEFAULT_KEY

#: Metadata keys kept on ``tenant.resolved`` events unless configured otherwise.
DEFAULT_TELEMETRY_METADATA_FIELDS: tuple[str, ...] = (
    "source",
    "raw",
    "request_path",
    "claim",
)


class TenantContextConfig(BaseSettings):
    """Central configuration for the tenant context middleware.

    Example — programmatic::

        config = TenantContextConfig(
            sources=["header", "subdomain"],
            require_resolved=True,
        )

    Example — environment variables::

        # .env
        TENANT_CONTEXT_SOURCES='["subdomain"]'
        TENANT_CONTEXT_LOGGER_METADATA=false

        config = TenantContextConfig()  # reads from environment / .env
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANT_CONTEXT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    ##############
    # Resolution #
    ##############

    sources: list[str] = Field(
        default_factory=lambda: ["subdomain"],
        description="Registry identifiers of the sources to try, in priority order.",
    )

    key: str = Field(
        default=DEFAULT_KEY,
        description="Context key under which the resolved tenant is stored.",
    )

    require_resolved: bool = Field(
        default=False,
        description="Reject requests for which no source produced a tenant.",
    )

    reject_status_code: int = Field(
        default=403,
        ge=400,
        le=599,
        description="Status code of the default rejection response.",
    )

    reject_detail: str = Field(
        default="Tenant required",
        description="``detail`` text of the default rejection response.",
    )

    excluded_paths: list[str] = Field(
        default_factory=list,
        description="URL path prefixes that bypass tenant resolution entirely.",
    )

    #################
    # Observability #
    #################

    logger_metadata: bool = Field(
        default=True,
        description="Attach ``tenant_id`` to log records while a tenant is set.",
    )

    include_full_tenant: bool = Field(
        default=False,
        description="Also attach the full tenant value to log records.",
    )

    telemetry: bool = Field(
        default=True,
        description="Emit ``tenant.resolved`` / ``tenant.cleared`` / ``source.error`` events.",
    )

    telemetry_metadata_fields: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TELEMETRY_METADATA_FIELDS),
        description="Allow-list of metadata keys kept on ``tenant.resolved`` events.",
    )

    ####################
    # Field validators #
    ####################

    @field_validator("key")
    @classmethod
    def _validate_key(cls, v: str) -> str:
        """Reject blank context keys.

        Args:
            v: Context key.

        Returns:
            The validated key.

        Raises:
            ValueError: When the key is empty or whitespace.
        """
        if not v.strip():
            msg = "key must be a non-blank string."
            raise ValueError(msg)
        return v

    @field_validator("excluded_paths")
    @classmethod
    def _validate_excluded_paths(cls, v: list[str]) -> list[str]:
        """Require excluded paths to be absolute URL paths.

        Args:
            v: Path prefixes.

        Returns:
            The validated prefixes.

        Raises:
            ValueError: When a prefix does not start with ``/``.
        """
        for prefix in v:
            if not prefix.startswith("/"):
                msg = f"excluded path {prefix!r} must start with '/'."
                raise ValueError(msg)
        return v


__all__ = ["DEFAULT_TELEMETRY_METADATA_FIELDS", "TenantContextConfig"]
