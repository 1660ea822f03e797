"""Raw ASGI tenant context middleware — streaming-safe, context-clean.

Why raw ASGI instead of ``BaseHTTPMiddleware``
----------------------------------------------
Starlette's ``BaseHTTPMiddleware`` buffers responses and runs the downstream
app in a separate task, so ``ContextVar`` mutations made in ``dispatch()``
do not reliably reach the endpoint or its background tasks.  This middleware
implements the ASGI 3 callable ``__call__(scope, receive, send)`` directly:
the tenant set here is visible to every callable in the request's call chain.

Request lifecycle
-----------------
::

    Start → Resolve ─┬─ Resolved ──► set context ─► app ─► Cleanup → End
                     └─ Unresolved ─┬─ not required ────► app ───────► End
                                    └─ required ─┬─ on_missing(request)
                                                 └─ reject (403 JSON)

Cleanup — clearing the context entry, clearing log metadata, emitting
``tenant.cleared`` — runs in a ``finally`` block, so it happens exactly once
for every resolved request: normal completion, an exception raised by the
app, a response sent early, or cancellation of the request task.

Excluded paths
--------------
Health checks and metrics endpoints can bypass resolution::

    app.add_middleware(
        TenantContextMiddleware,
        sources=["header", "subdomain"],
        excluded_paths=["/health", "/metrics"],
    )
"""

from __future__ import annotations

import inspect
import json
import logging
from typing import TYPE_CHECKING, Any

from fastapi_tenant_context.core.config import TenantContextConfig
from fastapi_tenant_context.core.context import TenantContext
from fastapi_tenant_context.observability import log_context
from fastapi_tenant_context.observability.telemetry import TenantTelemetry, telemetry
from fastapi_tenant_context.resolution.chain import ResolutionChain

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from starlette.requests import HTTPConnection
    from starlette.types import ASGIApp, Receive, Scope, Send

    from fastapi_tenant_context.core.types import Resolution
    from fastapi_tenant_context.resolution.registry import SourceRegistry

    MissingTenantHandler = Callable[[HTTPConnection], Any]

logger = logging.getLogger(__name__)

#: WebSocket close code used when a required tenant is missing (policy violation).
WS_POLICY_VIOLATION = 1008


def _json_response(send: Send, status_code: int, detail: str) -> Awaitable[None]:
    """Build and send a minimal JSON error response.

    Args:
        send: ASGI send callable.
        status_code: HTTP status code.
        detail: Human-readable description for the ``detail`` field.

    Returns:
        Coroutine that completes after the body is sent.
    """
    body = json.dumps({"detail": detail}).encode("utf-8")
    headers: list[tuple[bytes, bytes]] = [
        (b"content-type", b"application/json"),
        (b"content-length", str(len(body)).encode()),
    ]

    async def _send() -> None:
        await send(
            {
                "type": "http.response.start",
                "status": status_code,
                "headers": headers,
            }
        )
        await send(
            {
                "type": "http.response.body",
                "body": body,
                "more_body": False,
            }
        )

    return _send()


class TenantContextMiddleware:
    """Raw ASGI middleware that resolves and scopes the tenant per request.

    Args:
        app: The downstream ASGI application.
        config: Behaviour switches.  Defaults to ``TenantContextConfig()``
            (environment / ``.env`` driven).
        sources: Chain entries overriding ``config.sources``; may include
            options, callables and custom source instances.
        registry: Registry resolving source identifiers.
        telemetry: Telemetry hub.  Defaults to the process-wide hub.
        on_missing: Called with the request when resolution fails and
            ``config.require_resolved`` is set.  May be async.  Returning a
            Starlette ``Response`` (any ASGI callable) sends it and halts the
            request; returning ``None`` lets the request continue without a
            tenant.
        excluded_paths: Path prefixes overriding ``config.excluded_paths``.

    Example::

        from fastapi_tenant_context import TenantContextConfig, TenantContextMiddleware

        app.add_middleware(
            TenantContextMiddleware,
            config=TenantContextConfig(require_resolved=True),
            sources=[("header", {"header": "x-tenant-id"}), "subdomain"],
        )
    """

    def __init__(
        self,
        app: ASGIApp,
        config: TenantContextConfig | None = None,
        sources: Iterable[Any] | None = None,
        registry: SourceRegistry | None = None,
        telemetry: TenantTelemetry | None = None,
        on_missing: MissingTenantHandler | None = None,
        excluded_paths: list[str] | None = None,
    ) -> None:
        self._app = app
        self._config = config if config is not None else TenantContextConfig()
        self._telemetry = telemetry
        self._on_missing = on_missing
        self._excluded: list[str] = list(
            excluded_paths if excluded_paths is not None else self._config.excluded_paths
        )
        self._chain = ResolutionChain(
            sources if sources is not None else self._config.sources,
            registry=registry,
            telemetry=telemetry,
            emit_events=self._config.telemetry,
        )

    @property
    def chain(self) -> ResolutionChain:
        return self._chain

    @property
    def telemetry(self) -> TenantTelemetry:
        return self._telemetry if self._telemetry is not None else telemetry

    def _is_excluded(self, path: str) -> bool:
        """Return ``True`` when *path* starts with any excluded prefix."""
        return any(path.startswith(prefix) for prefix in self._excluded)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Process an ASGI connection.

        Only ``http`` and ``websocket`` scopes are resolved.  All other scopes
        (``lifespan``, etc.) are passed through unchanged.
        """
        if scope["type"] not in ("http", "websocket"):
            await self._app(scope, receive, send)
            return

        if self._is_excluded(scope.get("path", "/")):
            await self._app(scope, receive, send)
            return

        await self._handle(scope, receive, send)

    async def _handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Resolve, then either scope the tenant around the app or handle its absence."""
        from starlette.requests import HTTPConnection, Request  # noqa: PLC0415

        request = Request(scope, receive) if scope["type"] == "http" else HTTPConnection(scope)

        resolution = await self._chain.resolve(request)
        if resolution is None:
            await self._handle_missing(request, scope, receive, send)
            return

        await self._run_with_tenant(resolution, scope, receive, send)

    async def _run_with_tenant(
        self,
        resolution: Resolution,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        config = self._config
        tenant = resolution.tenant

        TenantContext.set(tenant, config.key)
        try:
            if config.logger_metadata:
                log_context.attach_metadata(
                    tenant, include_full_tenant=config.include_full_tenant
                )
            if config.telemetry:
                self.telemetry.emit_resolved(
                    tenant,
                    resolution.source,
                    resolution.metadata,
                    request_path=scope.get("path"),
                    fields=config.telemetry_metadata_fields,
                )
            self._attach_to_state(scope, resolution)

            await self._app(scope, receive, send)
        finally:
            self._cleanup(tenant)

    def _cleanup(self, tenant: Any) -> None:
        config = self._config
        TenantContext.clear(config.key)
        if config.logger_metadata:
            log_context.clear_metadata()
        if config.telemetry:
            self.telemetry.emit_cleared(tenant)

    @staticmethod
    def _attach_to_state(scope: Scope, resolution: Resolution) -> None:
        """Expose the tenant on ``request.state`` for debugging tools."""
        # Starlette wraps scope["state"] in a State on first access, so it
        # must be a plain dict when we create it.
        state = scope.setdefault("state", {})
        if isinstance(state, dict):
            state["tenant"] = resolution.tenant
            state["tenant_source"] = resolution.source
        else:
            state.tenant = resolution.tenant
            state.tenant_source = resolution.source

    async def _handle_missing(
        self,
        request: HTTPConnection,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        if not self._config.require_resolved:
            await self._app(scope, receive, send)
            return

        if self._on_missing is not None:
            result = self._on_missing(request)
            if inspect.isawaitable(result):
                result = await result
            # Only an ASGI callable short-circuits; any other value means the
            # handler ran for its side effect.
            if callable(result):
                await result(scope, receive, send)
                return
            if result is not None:
                logger.debug(
                    "on_missing returned non-callable %s; continuing without tenant",
                    type(result).__name__,
                )
            await self._app(scope, receive, send)
            return

        logger.info("Rejected request to %s: no tenant resolved", scope.get("path", "/"))
        if scope["type"] == "websocket":
            await send({"type": "websocket.close", "code": WS_POLICY_VIOLATION})
            return
        await _json_response(send, self._config.reject_status_code, self._config.reject_detail)


__all__ = ["TenantContextMiddleware", "WS_POLICY_VIOLATION"]
