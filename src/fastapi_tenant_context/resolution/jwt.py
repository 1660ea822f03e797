"""JWT-based tenant extraction source.

Extracts the tenant from a claim of a Bearer token carried in the
``Authorization`` request header.

Example JWT payload::

    {
        "sub": "user-abc",
        "tenant_id": "acme",
        "exp": 1893456000
    }

Options
-------
``claim``
    Payload claim holding the tenant.  Defaults to ``"tenant_id"``.
``header``
    Header carrying the token.  Defaults to ``"authorization"``.
``verifier``
    Callable ``token -> claims`` (or an object with ``verify(token)``) that
    validates and decodes the token.  Takes precedence over ``secret``.
``secret`` / ``algorithm``
    Verify the token with python-jose instead of a custom verifier.
    ``algorithm`` defaults to ``"HS256"``.

Failure reasons
---------------
``invalid_token`` (not a Bearer header), ``empty_token``, ``no_verifier``,
``verifier_exception``, ``malformed_jwt``, ``invalid_claims`` and
``missing_claim``.  A missing header is ``NotFound``.

Security notes
--------------
Verifier exceptions and python-jose errors are logged at ``WARNING`` for
operators; only the generic reason is reported on the outcome.  The token
itself is never logged.

Installation
------------
``secret``-based verification requires the ``jwt`` extra::

    pip install fastapi-tenant-context[jwt]
    # which installs: python-jose[cryptography]
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

try:
    from jose import JWTError, jwt as _jose_jwt

    _JOSE_AVAILABLE = True
except ImportError:  # pragma: no cover
    _JOSE_AVAILABLE = False
    JWTError = Exception  # type: ignore[misc, assignment]
    _jose_jwt = None  # type: ignore[assignment]

from fastapi_tenant_context.core.types import NOT_FOUND, Failed, Success
from fastapi_tenant_context.resolution.base import BaseTenantSource

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from fastapi_tenant_context.core.types import ExtractionOutcome

logger = logging.getLogger(__name__)

DEFAULT_CLAIM = "tenant_id"
DEFAULT_AUTH_HEADER = "authorization"


class _VerificationFailed(Exception):
    """Internal signal carrying a ``Failed`` reason out of verification."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class JWTTenantSource(BaseTenantSource):
    """Resolve the tenant from a claim of a verified Bearer JWT.

    Example::

        chain = ResolutionChain([
            ("jwt", {"secret": os.environ["JWT_SECRET"], "claim": "org_id"}),
            "header",
        ])
    """

    source_id: ClassVar[str] = "jwt"

    def extract(
        self,
        request: HTTPConnection,
        options: Mapping[str, Any],
    ) -> ExtractionOutcome:
        """Verify the Bearer token and read the tenant claim.

        Returns:
            ``Success`` with metadata ``{"source": "jwt", "claim": <claim>}``,
            ``NotFound`` when the header is absent, or ``Failed``.
        """
        claim = options.get("claim", DEFAULT_CLAIM)
        header_name = options.get("header", DEFAULT_AUTH_HEADER)

        auth_header = request.headers.get(header_name)
        if auth_header is None:
            return NOT_FOUND

        parts = auth_header.split(" ", maxsplit=1)
        if len(parts) != 2 or parts[0] not in ("Bearer", "bearer"):
            return Failed("invalid_token")

        token = parts[1].strip()
        if not token:
            return Failed("empty_token")

        try:
            claims = self._verify(token, options)
        except _VerificationFailed as exc:
            return Failed(exc.reason)

        if not isinstance(claims, Mapping):
            return Failed("invalid_claims")

        tenant = claims.get(claim)
        if tenant is None:
            logger.warning("JWT payload missing required claim %r", claim)
            return Failed("missing_claim")

        return Success(tenant, {"source": self.source_id, "claim": claim})

    @staticmethod
    def _verify(token: str, options: Mapping[str, Any]) -> Any:
        """Return the decoded claims, or raise :class:`_VerificationFailed`."""
        verifier = options.get("verifier")
        if verifier is not None:
            if callable(verifier):
                verify = verifier
            elif callable(getattr(verifier, "verify", None)):
                verify = verifier.verify
            else:
                raise _VerificationFailed("invalid_verifier")
            try:
                return verify(token)
            except Exception as exc:  # noqa: BLE001
                logger.warning("JWT verifier raised %s: %s", type(exc).__name__, exc)
                raise _VerificationFailed("verifier_exception") from exc

        secret = options.get("secret")
        if not secret:
            raise _VerificationFailed("no_verifier")
        if not _JOSE_AVAILABLE:
            logger.warning(
                "JWT secret configured but python-jose is not installed: "
                "pip install fastapi-tenant-context[jwt]"
            )
            raise _VerificationFailed("no_verifier")

        algorithm = options.get("algorithm", "HS256")
        try:
            return _jose_jwt.decode(token, secret, algorithms=[algorithm])  # type: ignore[union-attr]
        except JWTError as exc:
            logger.warning("JWT validation failed: %s", exc)
            raise _VerificationFailed("malformed_jwt") from exc


__all__ = ["DEFAULT_AUTH_HEADER", "DEFAULT_CLAIM", "JWTTenantSource"]
