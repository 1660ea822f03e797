"""Async-safe tenant context management using :mod:`contextvars`.

Each asyncio task (i.e. each HTTP request handled by an ASGI server) and each
thread automatically receives its own copy of every
:class:`~contextvars.ContextVar`, so a tenant set in the middleware layer is
isolated from every other concurrent request without any explicit locking.

The store is a keyed namespace: one ``ContextVar`` holds an immutable mapping
of ``key -> tenant``.  Every write installs a fresh mapping, so a copy of the
context taken by :func:`asyncio.create_task` or
:func:`contextvars.copy_context` never observes later writes made by its
parent.  Presence is the presence of the key itself, which lets ``None``,
``""`` and ``0`` be stored as ordinary tenant values.

Public surface
--------------
:class:`TenantContext`
    Class with only static methods — acts as a namespace rather than an
    instance.

:func:`get_current_tenant` / :func:`get_current_tenant_optional`
    FastAPI-compatible dependencies for the default key.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from contextvars import ContextVar
from types import MappingProxyType
from typing import Any

from fastapi_tenant_context.core.exceptions import ConfigurationError, TenantNotFoundError
from fastapi_tenant_context.core.types import (
    ABSENT,
    DEFAULT_KEY,
    InvalidSnapshot,
    Snapshot,
)

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, Any] = MappingProxyType({})

_store_ctx: ContextVar[Mapping[str, Any]] = ContextVar(
    "tenant_context_store", default=_EMPTY
)


def _is_valid_key(key: Any) -> bool:
    return isinstance(key, str) and bool(key.strip())


def _check_key(key: Any) -> None:
    if not _is_valid_key(key):
        raise ConfigurationError("key", f"context keys must be non-blank strings, got {key!r}.")


_MUTABLE_CONTAINERS = (dict, list)
_IMMUTABLE_CONTAINERS = (tuple, set, frozenset)


def _copy_nested(value: Any) -> Any:
    """Deep-copy built-in containers without recursion.

    Used when nesting exceeds the interpreter's recursion limit.  Dicts and
    lists get an empty placeholder before their children are visited, which
    keeps cycles through them intact.  Anything that is not a built-in
    container is handed to :func:`copy.deepcopy` as a leaf.
    """
    memo: dict[int, Any] = {}
    stack: list[tuple[bool, Any]] = [(False, value)]
    while stack:
        build, obj = stack.pop()
        oid = id(obj)
        if build:
            if isinstance(obj, dict):
                target = memo[oid]
                for k, v in obj.items():
                    target[memo[id(k)]] = memo[id(v)]
            elif isinstance(obj, list):
                memo[oid].extend(memo[id(item)] for item in obj)
            elif oid not in memo:
                memo[oid] = type(obj)(memo[id(item)] for item in obj)
            continue
        if oid in memo:
            continue
        if type(obj) in _MUTABLE_CONTAINERS:
            memo[oid] = type(obj)()
            children = [c for pair in obj.items() for c in pair] if isinstance(obj, dict) else obj
        elif type(obj) in _IMMUTABLE_CONTAINERS:
            children = obj
        else:
            memo[oid] = copy.deepcopy(obj)
            continue
        stack.append((True, obj))
        stack.extend((False, child) for child in children)
    return memo[id(value)]


def _detach(value: Any) -> Any:
    """Return an independent deep copy of *value*.

    ``copy.deepcopy`` memoises visited objects, so cyclic structures are
    copied without looping.  Nesting deeper than the recursion limit falls
    back to :func:`_copy_nested`.  Values that refuse to be copied (locks,
    sockets) are carried by reference.
    """
    try:
        try:
            return copy.deepcopy(value)
        except RecursionError:
            return _copy_nested(value)
    except (TypeError, copy.Error) as exc:
        logger.warning(
            "Tenant value of type %s cannot be deep-copied (%s); "
            "snapshot carries it by reference",
            type(value).__name__,
            exc,
        )
        return value


def _write(key: str, tenant: Any) -> None:
    updated = dict(_store_ctx.get())
    updated[key] = tenant
    _store_ctx.set(MappingProxyType(updated))


class TenantContext:
    """Namespace for async-safe per-request tenant context.

    All methods are static; this class is never instantiated.

    Usage in middleware::

        TenantContext.set(tenant)
        try:
            await app(scope, receive, send)
        finally:
            TenantContext.clear()

    Usage in route handlers::

        tenant = TenantContext.get()           # raises if not set
        tenant = TenantContext.get_optional()  # None if not set
        value = TenantContext.current()        # ABSENT if not set

    Handing the tenant to deferred work::

        payload = {"snapshot": TenantContext.snapshot().as_dict(), ...}
        # … in the worker
        TenantContext.apply_snapshot(payload["snapshot"])
    """

    # ------------------------------------------------------------------
    # Entry accessors
    # ------------------------------------------------------------------

    @staticmethod
    def set(tenant: Any, key: str = DEFAULT_KEY) -> None:
        """Store *tenant* under *key*, overwriting any previous value.

        The tenant's shape is never inspected.

        Args:
            tenant: Any tenant value.
            key: Context key.

        Raises:
            ConfigurationError: When *key* is not a non-blank string, the
                same rule :meth:`apply_snapshot` applies to snapshot keys.
        """
        _check_key(key)
        _write(key, tenant)

    @staticmethod
    def current(key: str = DEFAULT_KEY) -> Any:
        """Return the tenant stored under *key*, or :data:`ABSENT`.

        Args:
            key: Context key.

        Returns:
            The stored tenant, or :data:`~fastapi_tenant_context.core.types.ABSENT`.
        """
        return _store_ctx.get().get(key, ABSENT)

    @staticmethod
    def get(key: str = DEFAULT_KEY) -> Any:
        """Return the tenant stored under *key*, raising if none is set.

        Raises:
            TenantNotFoundError: When called outside a tenant-aware request
                (e.g. from a background task that did not apply a snapshot).
        """
        store = _store_ctx.get()
        if key not in store:
            raise TenantNotFoundError(key)
        return store[key]

    @staticmethod
    def get_optional(key: str = DEFAULT_KEY, default: Any = None) -> Any:
        """Return the tenant stored under *key*, or *default*."""
        return _store_ctx.get().get(key, default)

    @staticmethod
    def is_set(key: str = DEFAULT_KEY) -> bool:
        """Return ``True`` when an entry exists under *key*."""
        return key in _store_ctx.get()

    @staticmethod
    def clear(key: str = DEFAULT_KEY) -> None:
        """Remove the entry under *key*.  Clearing an absent key is a no-op."""
        store = _store_ctx.get()
        if key not in store:
            return
        updated = dict(store)
        del updated[key]
        _store_ctx.set(MappingProxyType(updated) if updated else _EMPTY)

    @staticmethod
    def clear_all() -> None:
        """Remove every entry from the current namespace."""
        _store_ctx.set(_EMPTY)

    # ------------------------------------------------------------------
    # Snapshot protocol
    # ------------------------------------------------------------------

    @staticmethod
    def snapshot(key: str = DEFAULT_KEY) -> Snapshot | None:
        """Capture the entry under *key* as an immutable :class:`Snapshot`.

        The tenant is deep-copied, so mutating the live value afterwards does
        not alter the snapshot.

        Args:
            key: Context key.

        Returns:
            A snapshot, or ``None`` when nothing is stored under *key*.
        """
        store = _store_ctx.get()
        if key not in store:
            return None
        return Snapshot(tenant=_detach(store[key]), key=key)

    @staticmethod
    def apply_snapshot(snapshot: Snapshot | Mapping[str, Any] | None) -> InvalidSnapshot | None:
        """Write a snapshot's tenant into the current namespace.

        Accepts a :class:`Snapshot`, its :meth:`~Snapshot.as_dict` form, or
        ``None`` (a no-op).  The tenant is deep-copied again on apply so two
        tasks applying the same snapshot never share mutable state.

        Args:
            snapshot: The snapshot to apply.

        Returns:
            ``None`` on success; an
            :class:`~fastapi_tenant_context.core.types.InvalidSnapshot` when
            *snapshot* is structurally malformed.  Never raises.
        """
        if snapshot is None:
            return None

        if isinstance(snapshot, Snapshot):
            tenant, key = snapshot.tenant, snapshot.key
        elif isinstance(snapshot, Mapping):
            if "tenant" not in snapshot:
                return InvalidSnapshot("snapshot has no 'tenant' entry")
            if "key" not in snapshot:
                return InvalidSnapshot("snapshot has no 'key' entry")
            tenant, key = snapshot["tenant"], snapshot["key"]
        else:
            return InvalidSnapshot(f"unsupported snapshot type {type(snapshot).__name__}")

        if not _is_valid_key(key):
            return InvalidSnapshot(f"snapshot key {key!r} is not a non-blank string")

        _write(key, _detach(tenant))
        return None

    # ------------------------------------------------------------------
    # Scope context managers
    # ------------------------------------------------------------------

    class scope:
        """Context manager for a temporary tenant under one key.

        Sets a tenant for the duration of a ``with`` or ``async with`` block
        and restores the key's previous state on exit — even if an exception
        is raised.  Other keys are left untouched::

            async with TenantContext.scope("acme"):
                await process_tenant_data()
            # Previous entry (usually absent) is restored here.
        """

        def __init__(self, tenant: Any, key: str = DEFAULT_KEY) -> None:
            self._tenant = tenant
            self._key = key
            self._previous: Any = ABSENT

        def _enter(self) -> Any:
            self._previous = TenantContext.current(self._key)
            TenantContext.set(self._tenant, self._key)
            return self._tenant

        def _exit(self) -> None:
            if self._previous is ABSENT:
                TenantContext.clear(self._key)
            else:
                TenantContext.set(self._previous, self._key)

        # Async protocol ------------------------------------------------

        async def __aenter__(self) -> Any:
            """Enter the async scope and return the active tenant."""
            return self._enter()

        async def __aexit__(
            self,
            exc_type: type[BaseException] | None,
            exc_val: BaseException | None,
            exc_tb: Any,
        ) -> None:
            """Exit the async scope and restore the previous entry."""
            self._exit()

        # Sync protocol -------------------------------------------------

        def __enter__(self) -> Any:
            """Enter the synchronous scope and return the active tenant."""
            return self._enter()

        def __exit__(
            self,
            exc_type: type[BaseException] | None,
            exc_val: BaseException | None,
            exc_tb: Any,
        ) -> None:
            """Exit the synchronous scope and restore the previous entry."""
            self._exit()

    class applied(scope):
        """Context manager that applies a snapshot for the duration of a block.

        Intended for workers that receive a snapshot with their job::

            def perform(job):
                with TenantContext.applied(job["tenant_snapshot"]):
                    handle(job)

        ``None`` applies nothing and yields ``None``.

        Raises:
            ValueError: On entry, when the snapshot is malformed.
        """

        def __init__(self, snapshot: Snapshot | Mapping[str, Any] | None) -> None:
            self._snapshot = snapshot
            key = DEFAULT_KEY
            if isinstance(snapshot, Snapshot):
                key = snapshot.key
            elif isinstance(snapshot, Mapping) and _is_valid_key(snapshot.get("key")):
                key = snapshot["key"]
            super().__init__(None, key)

        def _enter(self) -> Any:
            self._previous = TenantContext.current(self._key)
            if self._snapshot is None:
                return None
            error = TenantContext.apply_snapshot(self._snapshot)
            if error is not None:
                msg = f"Cannot apply tenant snapshot: {error.reason}"
                raise ValueError(msg)
            return TenantContext.current(self._key)


# ---------------------------------------------------------------------------
# FastAPI dependency functions
# ---------------------------------------------------------------------------


def get_current_tenant() -> Any:
    """FastAPI dependency — return the current tenant or raise.

    Inject this via ``Depends`` in any route that requires a tenant::

        @app.get("/users")
        async def list_users(tenant: str = Depends(get_current_tenant)):
            ...

    Raises:
        TenantNotFoundError: When no tenant is set under the default key.
    """
    return TenantContext.get()


def get_current_tenant_optional() -> Any:
    """FastAPI dependency — return the current tenant or ``None``."""
    return TenantContext.get_optional()


__all__ = [
    "TenantContext",
    "get_current_tenant",
    "get_current_tenant_optional",
]
