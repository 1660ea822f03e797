"""Header-based tenant extraction source.

Extracts the tenant identifier from a named HTTP request header.

Example request::

    GET /api/users HTTP/1.1
    Host: api.example.com
    X-Tenant-ID: acme

Options
-------
``header``
    Header name to read.  Matching is case-insensitive (RFC 7230 §3.2).
    Defaults to ``"x-tenant-id"``.
``mapper``
    Optional callable applied to the trimmed header value, e.g. to turn a
    slug into a richer tenant record.  Non-callable values are ignored.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

from fastapi_tenant_context.core.types import NOT_FOUND, Success
from fastapi_tenant_context.resolution.base import BaseTenantSource

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import HTTPConnection

    from fastapi_tenant_context.core.types import ExtractionOutcome

logger = logging.getLogger(__name__)

DEFAULT_HEADER = "x-tenant-id"


class HeaderTenantSource(BaseTenantSource):
    """Resolve the tenant from a named HTTP request header.

    Example::

        chain = ResolutionChain([("header", {"header": "x-org-id"})])
    """

    source_id: ClassVar[str] = "header"

    def extract(
        self,
        request: HTTPConnection,
        options: Mapping[str, Any],
    ) -> ExtractionOutcome:
        """Read the configured header and return its trimmed value.

        Returns:
            ``Success`` with metadata ``{"source": "header", "raw": <value>}``,
            or ``NotFound`` when the header is absent or blank.
        """
        header_name = options.get("header", DEFAULT_HEADER)
        raw = request.headers.get(header_name)
        if raw is None:
            return NOT_FOUND

        value = raw.strip()
        if not value:
            return NOT_FOUND

        mapper = options.get("mapper")
        tenant = mapper(value) if callable(mapper) else value
        logger.debug("Header %r yielded tenant value %r", header_name, value)
        return Success(tenant, {"source": self.source_id, "raw": raw})


__all__ = ["DEFAULT_HEADER", "HeaderTenantSource"]
