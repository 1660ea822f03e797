"""Ordered, fail-open resolution chain.

The chain tries each configured source in order and stops at the first
``Success``.  Everything else falls through to the next entry:

* ``NotFound`` — silent.
* ``Failed(reason)`` — logged at ``INFO`` and emitted as ``source.error``.
* A fault — an exception raised by ``extract``, an entry without a callable
  ``extract``, options that are not a mapping, or a return value that is not
  an outcome — is caught here, classified as
  :class:`~fastapi_tenant_context.core.exceptions.SourceFaultError`, logged
  with the source identifier, emitted as ``source.error`` and treated as
  ``NotFound``.

One misbehaving source therefore never fails the request.  Order is the only
priority mechanism: entries after the first ``Success`` are never invoked.

State machine::

    Pending → Trying(0) → Trying(1) → … → Resolved(tenant, metadata)
                                        ↘ Unresolved
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from fastapi_tenant_context.core.exceptions import SourceFaultError
from fastapi_tenant_context.core.types import (
    NOT_FOUND,
    Failed,
    Resolution,
    SourceConfig,
    Success,
    is_outcome,
)
from fastapi_tenant_context.observability.telemetry import TenantTelemetry, telemetry
from fastapi_tenant_context.resolution.registry import SourceRegistry

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from fastapi_tenant_context.core.types import ExtractionOutcome

logger = logging.getLogger(__name__)


class ResolutionChain:
    """Resolve a tenant by trying sources in a fixed order.

    Args:
        sources: Entries in priority order.  Each may be a registry
            identifier (``"header"``), a source class or instance, a
            ``(source, options)`` pair, or a
            :class:`~fastapi_tenant_context.core.types.SourceConfig`.
        registry: Registry used to resolve identifiers.  Defaults to the
            built-in header, subdomain and jwt sources.
        telemetry: Hub receiving ``source.error`` events.  Defaults to the
            process-wide hub.
        emit_events: Set ``False`` to silence ``source.error`` events.

    Raises:
        ConfigurationError: When an identifier is not registered.

    Example::

        chain = ResolutionChain([
            ("header", {"header": "x-tenant-id"}),
            ("subdomain", {"exclude_subdomains": ["www"]}),
        ])
        resolution = await chain.resolve(request)
        if resolution is not None:
            print(resolution.tenant, resolution.source)
    """

    def __init__(
        self,
        sources: Iterable[Any],
        registry: SourceRegistry | None = None,
        telemetry: TenantTelemetry | None = None,
        emit_events: bool = True,
    ) -> None:
        self._registry = registry if registry is not None else SourceRegistry.with_builtins()
        self._entries: tuple[SourceConfig, ...] = tuple(self._registry.build(sources))
        self._telemetry = telemetry
        self._emit_events = emit_events
        logger.debug(
            "ResolutionChain sources=%s",
            [entry.source_id for entry in self._entries],
        )

    @property
    def entries(self) -> tuple[SourceConfig, ...]:
        """The normalised entries, in priority order."""
        return self._entries

    @property
    def telemetry(self) -> TenantTelemetry:
        return self._telemetry if self._telemetry is not None else telemetry

    async def resolve(self, request: HTTPConnection) -> Resolution | None:
        """Run the chain against *request*.

        Never raises for source-level problems.

        Args:
            request: The inbound connection.  Never mutated.

        Returns:
            The :class:`~fastapi_tenant_context.core.types.Resolution` of the
            first successful source, or ``None`` when every source fell
            through.
        """
        for entry in self._entries:
            outcome = await self._attempt(entry, request)

            if isinstance(outcome, Success):
                metadata = outcome.metadata if isinstance(outcome.metadata, Mapping) else {}
                logger.debug("Tenant resolved by source %r", entry.source_id)
                return Resolution(
                    tenant=outcome.tenant,
                    metadata=dict(metadata),
                    source=entry.source_id,
                )

            if isinstance(outcome, Failed):
                logger.info(
                    "Source %r could not extract a tenant: %s",
                    entry.source_id,
                    outcome.reason,
                )
                self._emit_source_error(entry.source_id, outcome.reason)

        logger.debug("No source resolved a tenant")
        return None

    async def _attempt(self, entry: SourceConfig, request: HTTPConnection) -> ExtractionOutcome:
        """Invoke one source with fault containment."""
        try:
            extract = getattr(entry.source, "extract", None)
            if not callable(extract):
                raise SourceFaultError(
                    entry.source_id,
                    "source does not implement extract(request, options)",
                )
            if not isinstance(entry.options, Mapping):
                raise SourceFaultError(
                    entry.source_id,
                    f"options must be a mapping, got {type(entry.options).__name__}",
                )

            outcome = extract(request, entry.options)
            if inspect.isawaitable(outcome):
                outcome = await outcome

            if not is_outcome(outcome):
                raise SourceFaultError(
                    entry.source_id,
                    f"returned {type(outcome).__name__} instead of an extraction outcome",
                )
        except SourceFaultError as fault:
            self._report_fault(fault)
            return NOT_FOUND
        except Exception as exc:
            self._report_fault(SourceFaultError.from_exception(entry.source_id, exc), exc)
            return NOT_FOUND
        return outcome

    def _report_fault(self, fault: SourceFaultError, exc: BaseException | None = None) -> None:
        logger.warning(
            "Tenant source %r faulted and was skipped: %s",
            fault.strategy_id,
            fault.reason,
            exc_info=exc,
        )
        self._emit_source_error(fault.strategy_id, fault.reason)

    def _emit_source_error(self, strategy_id: str, reason: str) -> None:
        if self._emit_events:
            self.telemetry.emit_source_error(strategy_id, reason)


__all__ = ["ResolutionChain"]
