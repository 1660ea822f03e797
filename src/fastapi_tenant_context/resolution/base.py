"""Abstract base class for tenant extraction sources.

Every built-in source — header, subdomain, JWT — derives from
:class:`BaseTenantSource` and implements a single abstract method:
:meth:`~BaseTenantSource.extract`.  The resolution chain does not require the
base class; any object with a compatible ``extract`` method can be
registered.

Extension pattern::

    from fastapi_tenant_context.core.types import NOT_FOUND, Success
    from fastapi_tenant_context.resolution.base import BaseTenantSource

    class CookieTenantSource(BaseTenantSource):
        source_id = "cookie"

        def extract(self, request, options):
            value = request.cookies.get(options.get("cookie", "tenant"))
            if not value:
                return NOT_FOUND
            return Success(value, {"source": self.source_id, "raw": value})

Contract
--------
* Absence of a tenant is :data:`~fastapi_tenant_context.core.types.NOT_FOUND`,
  never an exception.
* Recognised malformed input is
  :class:`~fastapi_tenant_context.core.types.Failed`.
* The request is read-only.  Sources keep no per-request mutable state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import HTTPConnection

    from fastapi_tenant_context.core.types import ExtractionOutcome


class BaseTenantSource(ABC):
    """Abstract base class for tenant extraction sources.

    Attributes:
        source_id: Identifier reported in outcome metadata, logs and
            telemetry.  Subclasses override it.
    """

    source_id: ClassVar[str] = "custom"

    @abstractmethod
    def extract(
        self,
        request: HTTPConnection,
        options: Mapping[str, Any],
    ) -> ExtractionOutcome:
        """Extract the tenant from *request*.

        Args:
            request: A Starlette :class:`~starlette.requests.HTTPConnection`
                (a :class:`~starlette.requests.Request` for HTTP scopes).
            options: This source's options mapping.

        Returns:
            ``Success``, ``NotFound`` or ``Failed``.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(source_id={self.source_id!r})"


__all__ = ["BaseTenantSource"]
