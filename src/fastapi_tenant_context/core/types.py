"""Domain types for fastapi-tenant-context.

This module is the single source of truth for the library's vocabulary.  All
other modules import *from* this module — never the reverse — to keep the
dependency graph acyclic.

Design notes
------------
* Extraction outcomes are a small tagged union of frozen dataclasses:
  :class:`Success`, :class:`NotFound` and :class:`Failed`.  Sources return one
  of them; the resolution chain pattern-matches on the type.
* :class:`Snapshot` is frozen and holds no reference to the task that
  produced it.  :meth:`Snapshot.as_dict` renders it as plain data so callers
  can embed it in a serialised job payload.
* :data:`ABSENT` is the "no tenant" marker.  It is a dedicated singleton so
  that ``None``, ``""``, ``0`` and ``False`` remain valid tenant values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias, runtime_checkable

#: Context key used when callers do not pass one explicitly.
DEFAULT_KEY = "tenant"


# ---------------------------------------------------------------------------
# Absent marker
# ---------------------------------------------------------------------------


class _Absent:
    """Singleton type for :data:`ABSENT`."""

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __copy__(self) -> _Absent:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _Absent:
        return self

    def __reduce__(self) -> str:
        return "ABSENT"


#: Returned by :meth:`~fastapi_tenant_context.core.context.TenantContext.current`
#: when no tenant is stored under the requested key.
ABSENT = _Absent()


# ---------------------------------------------------------------------------
# Extraction outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Success:
    """A source found a tenant.

    Attributes:
        tenant: The extracted tenant value.  Opaque to the library.
        metadata: Observability-only details such as ``{"source": "header",
            "raw": "acme"}``.  Never used for control flow.
    """

    tenant: Any
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class NotFound:
    """A source applies to the request but found no tenant in it."""


@dataclass(frozen=True, slots=True)
class Failed:
    """A source recognised malformed input (e.g. a broken bearer token).

    Attributes:
        reason: Short machine-readable reason such as ``"malformed_jwt"``.
    """

    reason: str


#: Shared :class:`NotFound` instance; sources may also build their own.
NOT_FOUND = NotFound()

ExtractionOutcome: TypeAlias = Success | NotFound | Failed

_OUTCOME_TYPES = (Success, NotFound, Failed)


def is_outcome(value: Any) -> bool:
    """Return ``True`` when *value* is one of the three extraction outcomes."""
    return isinstance(value, _OUTCOME_TYPES)


# ---------------------------------------------------------------------------
# Source configuration
# ---------------------------------------------------------------------------


@runtime_checkable
class TenantSource(Protocol):
    """Structural type for anything the resolution chain can call.

    Any object with an ``extract(request, options)`` method returning an
    :data:`ExtractionOutcome` (or an awaitable of one) qualifies — no
    inheritance required.
    """

    def extract(self, request: Any, options: Mapping[str, Any]) -> Any:
        """Extract the tenant from *request*."""
        ...


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """One configured entry of the resolution chain.

    Attributes:
        source: A registry identifier (``"header"``), a source class, or a
            source instance.
        options: Per-source options passed verbatim to ``extract``.
        name: Identifier reported in logs and telemetry.  Derived from
            *source* when omitted.
    """

    source: Any
    options: Any = field(default_factory=dict)
    name: str | None = None

    @property
    def source_id(self) -> str:
        """Identifier used in logs and telemetry for this entry."""
        return self.name or describe_source(self.source)


def describe_source(source: Any) -> str:
    """Return a stable, human-readable identifier for *source*."""
    if isinstance(source, str):
        return source
    name = getattr(source, "source_id", None)
    if isinstance(name, str) and name:
        return name
    if isinstance(source, type):
        return source.__name__
    if source is None:
        return "None"
    return type(source).__name__


# ---------------------------------------------------------------------------
# Resolution result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Resolution:
    """Terminal ``Resolved`` state of the resolution chain.

    Attributes:
        tenant: The resolved tenant.
        metadata: Metadata of the winning :class:`Success`.
        source: Identifier of the entry that produced it.
    """

    tenant: Any
    metadata: Mapping[str, Any]
    source: str


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Immutable, transferable copy of one context entry.

    Applying a snapshot in another task is equivalent to calling
    ``TenantContext.set(snapshot.tenant, snapshot.key)`` there.
    """

    tenant: Any
    key: str = DEFAULT_KEY

    def as_dict(self) -> dict[str, Any]:
        """Return the snapshot as plain data for a job payload."""
        return {"tenant": self.tenant, "key": self.key}


@dataclass(frozen=True, slots=True)
class InvalidSnapshot:
    """Returned by ``apply_snapshot`` for a structurally malformed snapshot.

    Attributes:
        reason: Why the value could not be applied.
    """

    reason: str

    def __bool__(self) -> bool:
        return False


__all__ = [
    "ABSENT",
    "DEFAULT_KEY",
    "ExtractionOutcome",
    "Failed",
    "InvalidSnapshot",
    "NOT_FOUND",
    "NotFound",
    "Resolution",
    "Snapshot",
    "SourceConfig",
    "Success",
    "TenantSource",
    "describe_source",
    "is_outcome",
]
