"""Registry mapping source identifiers to extraction source implementations.

The three built-in sources are registered under ``"header"``,
``"subdomain"`` and ``"jwt"``.  Applications add their own with
:meth:`SourceRegistry.register`::

    registry = SourceRegistry.with_builtins()
    registry.register("cookie", CookieTenantSource)

    chain = ResolutionChain(["cookie", "header"], registry=registry)

Unknown identifiers raise :class:`~fastapi_tenant_context.core.exceptions.ConfigurationError`
when the chain is built — a typo in the source list is a startup error, not
a silently skipped source.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fastapi_tenant_context.core.exceptions import ConfigurationError
from fastapi_tenant_context.core.types import SourceConfig, describe_source

logger = logging.getLogger(__name__)


def _builtin_sources() -> dict[str, Any]:
    # Imported lazily so the JWT module's optional dependency is only
    # touched when the registry is built.
    from fastapi_tenant_context.resolution.header import HeaderTenantSource  # noqa: PLC0415
    from fastapi_tenant_context.resolution.jwt import JWTTenantSource  # noqa: PLC0415
    from fastapi_tenant_context.resolution.subdomain import SubdomainTenantSource  # noqa: PLC0415

    return {
        HeaderTenantSource.source_id: HeaderTenantSource,
        SubdomainTenantSource.source_id: SubdomainTenantSource,
        JWTTenantSource.source_id: JWTTenantSource,
    }


def _instantiate(identifier: str, source: Any) -> Any:
    """Return an instance for *source*, instantiating classes with no arguments."""
    if not isinstance(source, type):
        return source
    try:
        return source()
    except TypeError as exc:
        raise ConfigurationError(
            parameter="sources",
            reason=f"source {identifier!r} ({source.__name__}) cannot be built without arguments: {exc}",
        ) from exc


class SourceRegistry:
    """Mutable mapping of identifiers to source classes or instances."""

    def __init__(self, sources: Mapping[str, Any] | None = None) -> None:
        self._sources: dict[str, Any] = dict(sources or {})

    @classmethod
    def with_builtins(cls) -> SourceRegistry:
        """Return a registry pre-populated with header, subdomain and jwt."""
        return cls(_builtin_sources())

    def register(self, identifier: str, source: Any) -> None:
        """Register *source* (a class or an instance) under *identifier*.

        Re-registering an identifier replaces the previous implementation.

        Raises:
            ConfigurationError: When *identifier* is blank.
        """
        if not isinstance(identifier, str) or not identifier.strip():
            raise ConfigurationError(
                parameter="identifier",
                reason="source identifiers must be non-blank strings.",
            )
        if identifier in self._sources:
            logger.info("Replacing registered source %r", identifier)
        self._sources[identifier] = source

    def unregister(self, identifier: str) -> None:
        """Remove *identifier*; unknown identifiers are ignored."""
        self._sources.pop(identifier, None)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._sources

    def identifiers(self) -> list[str]:
        """Return the registered identifiers in registration order."""
        return list(self._sources)

    def lookup(self, identifier: str) -> Any:
        """Return a ready-to-call implementation for *identifier*.

        Raises:
            ConfigurationError: When *identifier* is not registered.
        """
        try:
            source = self._sources[identifier]
        except KeyError:
            raise ConfigurationError(
                parameter="sources",
                reason=(
                    f"unknown source identifier {identifier!r}; "
                    f"registered: {sorted(self._sources)}"
                ),
            ) from None
        return _instantiate(identifier, source)

    def build(self, entries: Any) -> list[SourceConfig]:
        """Normalise a configured source list into :class:`SourceConfig` entries.

        Each entry may be an identifier, a source class or instance, a
        ``(source, options)`` pair, or a :class:`SourceConfig`.  Identifiers
        and classes are resolved here; anything else is kept as-is and is
        classified by the chain at first use if it cannot extract.

        Raises:
            ConfigurationError: On unknown identifiers or un-buildable classes.
        """
        built: list[SourceConfig] = []
        for entry in entries:
            if isinstance(entry, SourceConfig):
                source, options, name = entry.source, entry.options, entry.name
            elif isinstance(entry, tuple) and len(entry) == 2:
                (source, options), name = entry, None
            else:
                source, options, name = entry, {}, None

            source_id = name or describe_source(source)
            if isinstance(source, str):
                impl = self.lookup(source)
            else:
                impl = _instantiate(source_id, source)
            built.append(SourceConfig(impl, options, name=source_id))
        return built


__all__ = ["SourceRegistry"]
