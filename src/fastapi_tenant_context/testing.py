"""Helpers for tests that need a tenant without going through the middleware.

Typical pytest usage::

    import pytest
    from fastapi_tenant_context import testing

    @pytest.fixture(autouse=True)
    def _tenant():
        testing.set_current("test_tenant")
        yield
        testing.clear_current()

    def test_scoped_query():
        assert TenantContext.get() == "test_tenant"

``set_current`` mirrors what the middleware does for a resolved request,
including log-record metadata, but emits no telemetry.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from fastapi_tenant_context.core.context import TenantContext
from fastapi_tenant_context.core.types import ABSENT, DEFAULT_KEY, InvalidSnapshot, Snapshot
from fastapi_tenant_context.observability import log_context


def set_current(tenant: Any, *, key: str = DEFAULT_KEY, logger_metadata: bool = True) -> None:
    """Set *tenant* under *key* for the current test."""
    TenantContext.set(tenant, key)
    if logger_metadata:
        log_context.attach_metadata(tenant)


def clear_current(*, key: str = DEFAULT_KEY, logger_metadata: bool = True) -> None:
    """Remove the tenant under *key* and, optionally, the log metadata."""
    TenantContext.clear(key)
    if logger_metadata:
        log_context.clear_metadata()


def snapshot(*, key: str = DEFAULT_KEY) -> Snapshot | None:
    return TenantContext.snapshot(key)


def apply_snapshot(snap: Snapshot | Mapping[str, Any] | None) -> InvalidSnapshot | None:
    return TenantContext.apply_snapshot(snap)


@contextmanager
def with_tenant(
    tenant: Any,
    *,
    key: str = DEFAULT_KEY,
    logger_metadata: bool = True,
) -> Iterator[Any]:
    """Run a block with *tenant* set, then restore whatever was there before.

    Example::

        with testing.with_tenant({"id": "acme", "plan": "pro"}) as tenant:
            assert TenantContext.get() == tenant
    """
    previous = TenantContext.current(key)
    previous_metadata = log_context.current_metadata()
    set_current(tenant, key=key, logger_metadata=logger_metadata)
    try:
        yield tenant
    finally:
        if previous is ABSENT:
            TenantContext.clear(key)
        else:
            TenantContext.set(previous, key)
        if logger_metadata:
            log_context.restore_metadata(previous_metadata)


__all__ = [
    "apply_snapshot",
    "clear_current",
    "set_current",
    "snapshot",
    "with_tenant",
]
