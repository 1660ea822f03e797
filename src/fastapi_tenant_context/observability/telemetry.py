"""Telemetry events for the tenant context lifecycle.

The middleware and the resolution chain emit three events.  Their payload
shapes are fixed:

``tenant.resolved``
    ``{"tenant": ..., "source": "<source id>", "metadata": {...}}`` — emitted
    once a source produced a tenant.  ``metadata`` is filtered through the
    configured allow-list and ``None`` values are dropped.

``tenant.cleared``
    ``{"tenant": ...}`` — emitted when the request's entry is removed.

``source.error``
    ``{"strategy_id": "<source id>", "reason": "..."}`` — emitted when a
    source returned ``Failed`` or faulted.

Handlers are plain callables ``handler(event, payload)`` attached under a
unique id::

    def count_resolved(event, payload):
        metrics.increment("tenant.resolved", tags={"source": payload["source"]})

    telemetry.attach("tenant-metrics", TENANT_RESOLVED, count_resolved)

A handler that raises is logged and detached so a broken metrics hook can
never fail a request.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from fastapi_tenant_context.core.config import DEFAULT_TELEMETRY_METADATA_FIELDS
from fastapi_tenant_context.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

TENANT_RESOLVED = "tenant.resolved"
TENANT_CLEARED = "tenant.cleared"
SOURCE_ERROR = "source.error"

EVENTS: frozenset[str] = frozenset({TENANT_RESOLVED, TENANT_CLEARED, SOURCE_ERROR})

TelemetryHandler = Callable[[str, Mapping[str, Any]], Any]


class TenantTelemetry:
    """Registry of event handlers plus typed emit helpers.

    Args:
        metadata_fields: Allow-list of metadata keys kept on
            ``tenant.resolved`` payloads.
    """

    def __init__(self, metadata_fields: Iterable[str] = DEFAULT_TELEMETRY_METADATA_FIELDS) -> None:
        self.metadata_fields: tuple[str, ...] = tuple(metadata_fields)
        self._lock = threading.Lock()
        # handler_id -> (events, handler); replaced wholesale on every change
        # so emit() can iterate without holding the lock.
        self._handlers: dict[str, tuple[frozenset[str], TelemetryHandler]] = {}

    # ------------------------------------------------------------------
    # Handler management
    # ------------------------------------------------------------------

    def attach(
        self,
        handler_id: str,
        events: str | Iterable[str],
        handler: TelemetryHandler,
    ) -> None:
        """Attach *handler* to one or more events under *handler_id*.

        Raises:
            ConfigurationError: When *handler_id* is already attached or an
                event name is unknown.
        """
        names = frozenset([events] if isinstance(events, str) else events)
        unknown = names - EVENTS
        if unknown:
            raise ConfigurationError(
                parameter="events",
                reason=f"unknown telemetry events {sorted(unknown)}; known: {sorted(EVENTS)}",
            )
        with self._lock:
            if handler_id in self._handlers:
                raise ConfigurationError(
                    parameter="handler_id",
                    reason=f"telemetry handler {handler_id!r} is already attached.",
                )
            updated = dict(self._handlers)
            updated[handler_id] = (names, handler)
            self._handlers = updated

    def detach(self, handler_id: str) -> bool:
        """Detach *handler_id*.  Returns ``False`` when it was not attached."""
        with self._lock:
            if handler_id not in self._handlers:
                return False
            updated = dict(self._handlers)
            del updated[handler_id]
            self._handlers = updated
            return True

    def detach_all(self) -> None:
        """Detach every handler."""
        with self._lock:
            self._handlers = {}

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def emit(self, event: str, payload: Mapping[str, Any]) -> None:
        """Deliver *payload* to every handler attached to *event*."""
        logger.debug("telemetry %s %s", event, payload)
        for handler_id, (events, handler) in self._handlers.items():
            if event not in events:
                continue
            try:
                handler(event, payload)
            except Exception:
                logger.exception(
                    "Telemetry handler %r failed on %s and was detached",
                    handler_id,
                    event,
                )
                self.detach(handler_id)

    def sanitize_metadata(
        self,
        metadata: Mapping[str, Any],
        fields: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        """Keep allow-listed keys of *metadata* whose value is not ``None``.

        Args:
            metadata: Raw outcome metadata.
            fields: Allow-list overriding :attr:`metadata_fields`.
        """
        allowed = self.metadata_fields if fields is None else fields
        return {
            key: metadata[key]
            for key in allowed
            if key in metadata and metadata[key] is not None
        }

    def emit_resolved(
        self,
        tenant: Any,
        source: str,
        metadata: Mapping[str, Any],
        request_path: str | None = None,
        fields: Iterable[str] | None = None,
    ) -> None:
        """Emit ``tenant.resolved``."""
        merged = dict(metadata)
        if request_path is not None:
            merged.setdefault("request_path", request_path)
        self.emit(
            TENANT_RESOLVED,
            {"tenant": tenant, "source": source, "metadata": self.sanitize_metadata(merged, fields)},
        )

    def emit_cleared(self, tenant: Any) -> None:
        """Emit ``tenant.cleared``."""
        self.emit(TENANT_CLEARED, {"tenant": tenant})

    def emit_source_error(self, strategy_id: str, reason: str) -> None:
        """Emit ``source.error``."""
        self.emit(SOURCE_ERROR, {"strategy_id": strategy_id, "reason": reason})


#: Process-wide default hub used when none is passed explicitly.
telemetry = TenantTelemetry()


__all__ = [
    "EVENTS",
    "SOURCE_ERROR",
    "TENANT_CLEARED",
    "TENANT_RESOLVED",
    "TelemetryHandler",
    "TenantTelemetry",
    "telemetry",
]
