"""Custom exceptions for fastapi-tenant-context.

All exceptions derive from ``TenancyError`` so callers can catch the entire
family with a single ``except TenancyError`` clause while still being able to
handle individual sub-types.

Exception hierarchy::

    TenancyError
    ├── TenantNotFoundError
    ├── ConfigurationError
    └── SourceFaultError

Design decisions:
    - Every exception carries a structured ``details`` dict that is safe to
      log.  It must never contain raw secrets or bearer tokens.
    - Source-level problems never escape the resolution chain.  A
      ``SourceFaultError`` is built by the chain to classify and report a
      fault; it is logged and emitted, not raised to the caller.
    - A malformed snapshot is not an exception at all: ``apply_snapshot``
      returns :class:`~fastapi_tenant_context.core.types.InvalidSnapshot`.
"""

from __future__ import annotations

from typing import Any


class TenancyError(Exception):
    """Base exception for all fastapi-tenant-context errors.

    Attributes:
        message: Human-readable description of the error.
        details: Supplementary key-value context.  Safe to log.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.details: dict[str, Any] = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return ``human-readable`` string."""
        if self.details:
            return f"{self.message} | details={self.details}"
        return self.message

    def __repr__(self) -> str:
        """Return ``repr`` string for debugging purpose."""
        return f"{type(self).__name__}(message={self.message!r})"


class TenantNotFoundError(TenancyError):
    """Raised by ``TenantContext.get`` when no tenant is set under a key.

    Attributes:
        key: The context key that was read.
    """

    def __init__(
        self,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = (
            f"No tenant is set in the current execution context under key {key!r}"
            if key
            else "No tenant is set in the current execution context"
        )
        super().__init__(message, details)
        self.key = key


class ConfigurationError(TenancyError):
    """Raised when the middleware or chain is configured inconsistently.

    Raised at construction time so misconfigured applications fail fast during
    startup rather than at the first request.

    Attributes:
        parameter: The name of the invalid setting.
        reason: Why the current value is invalid.
    """

    def __init__(
        self,
        parameter: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Invalid configuration for {parameter!r}: {reason}", details)
        self.parameter = parameter
        self.reason = reason


class SourceFaultError(TenancyError):
    """Classification of an unexpected fault inside one extraction source.

    Attributes:
        strategy_id: Identifier of the offending source.
        reason: Short description of the fault (exception type and message).
    """

    def __init__(
        self,
        strategy_id: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Source {strategy_id!r} faulted: {reason}", details)
        self.strategy_id = strategy_id
        self.reason = reason

    @classmethod
    def from_exception(cls, strategy_id: str, exc: BaseException) -> SourceFaultError:
        """Build a fault from an exception raised by a source."""
        return cls(
            strategy_id,
            f"{type(exc).__name__}: {exc}",
            details={"exception_type": type(exc).__name__},
        )


__all__ = [
    "ConfigurationError",
    "SourceFaultError",
    "TenancyError",
    "TenantNotFoundError",
]
