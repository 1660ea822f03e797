"""Subdomain-based tenant extraction source.

Extracts the tenant identifier from one dot-separated label of the request
host.

Example::

    Host: acme.example.com       → "acme"
    Host: api.acme.example.com   → "api"   (host_split_index=0)
    Host: api.acme.example.com   → "acme"  (host_split_index=1)

Options
-------
``host_split_index``
    Which label to use.  Defaults to ``0`` (the leftmost one).
``exclude_subdomains``
    Labels that never identify a tenant, e.g. ``["www", "api"]``.

Hosts with fewer than three labels (``example.com``, ``localhost``) and
dotted-quad IPv4 addresses carry no subdomain and yield ``NotFound``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

from fastapi_tenant_context.core.types import NOT_FOUND, Failed, Success
from fastapi_tenant_context.resolution.base import BaseTenantSource

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import HTTPConnection

    from fastapi_tenant_context.core.types import ExtractionOutcome

logger = logging.getLogger(__name__)

# A subdomain needs at least <label>.<domain>.<tld>.
_MIN_LABELS = 3


def _is_ipv4(host: str) -> bool:
    parts = host.split(".")
    return len(parts) == 4 and all(part.isdigit() for part in parts)


def request_host(request: HTTPConnection) -> str | None:
    """Return the request's host name without port, or ``None``."""
    hostname = request.url.hostname
    if hostname:
        return hostname
    raw = request.headers.get("host")
    if not raw:
        return None
    return raw.strip().rsplit(":", maxsplit=1)[0] or None


class SubdomainTenantSource(BaseTenantSource):
    """Resolve the tenant from a label of the request host.

    Example::

        chain = ResolutionChain([("subdomain", {"exclude_subdomains": ["www"]})])
    """

    source_id: ClassVar[str] = "subdomain"

    def extract(
        self,
        request: HTTPConnection,
        options: Mapping[str, Any],
    ) -> ExtractionOutcome:
        """Pick the configured host label.

        Returns:
            ``Success`` with metadata ``{"source": "subdomain", "raw": <host>}``;
            ``NotFound`` when the host has no usable subdomain; ``Failed``
            when ``host_split_index`` is not an integer.
        """
        index = options.get("host_split_index", 0)
        if isinstance(index, bool) or not isinstance(index, int):
            return Failed("invalid_host_split_index")

        excluded = options.get("exclude_subdomains", ())
        if isinstance(excluded, str):
            excluded = (excluded,)

        host = request_host(request)
        if not host or _is_ipv4(host):
            return NOT_FOUND

        parts = host.split(".")
        if index < 0 or index >= len(parts) or len(parts) < _MIN_LABELS:
            return NOT_FOUND

        label = parts[index]
        if not label or label in excluded:
            return NOT_FOUND

        logger.debug("Subdomain source: host=%r → %r", host, label)
        return Success(label, {"source": self.source_id, "raw": host})


__all__ = ["SubdomainTenantSource", "request_host"]
