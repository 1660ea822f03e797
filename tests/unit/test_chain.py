"""Unit tests — fastapi_tenant_context.resolution.chain.ResolutionChain

Verified:
* First Success wins; later sources are never invoked
* NotFound / Failed fall through in order
* Failed is logged at INFO and emitted as source.error
* Faults (exceptions, non-implementing entries, bad options, bad return
  values) are contained, logged with the source id, emitted and skipped
* Sync and async sources
* Unknown identifiers fail at construction
"""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest
from starlette.datastructures import Headers

from fastapi_tenant_context.core.exceptions import ConfigurationError
from fastapi_tenant_context.core.types import NOT_FOUND, Failed, SourceConfig, Success
from fastapi_tenant_context.observability.telemetry import SOURCE_ERROR
from fastapi_tenant_context.resolution.base import BaseTenantSource
from fastapi_tenant_context.resolution.chain import ResolutionChain
from fastapi_tenant_context.resolution.header import HeaderTenantSource

pytestmark = pytest.mark.unit


class _Fixed(BaseTenantSource):
    source_id = "fixed"

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = 0

    def extract(self, request, options):
        self.calls += 1
        return self.outcome


class _Raising(BaseTenantSource):
    source_id = "raising"

    def extract(self, request, options):
        raise RuntimeError("backend unavailable")


class _AsyncSource:
    source_id = "async-lookup"

    async def extract(self, request, options):
        return Success(options.get("tenant", "async-acme"), {"source": "async"})


def _spy() -> MagicMock:
    spy = MagicMock()
    spy.source_id = "spy"
    spy.extract.return_value = Success("never")
    return spy


# ─────────────────────────────── Ordering ─────────────────────────────────────


class TestOrdering:
    async def test_first_success_wins(self, mock_request, hub):
        first = _Fixed(Success("acme", {"source": "fixed"}))
        spy = _spy()
        chain = ResolutionChain([first, spy], telemetry=hub)

        resolution = await chain.resolve(mock_request())

        assert resolution.tenant == "acme"
        assert resolution.source == "fixed"
        assert resolution.metadata == {"source": "fixed"}
        spy.extract.assert_not_called()

    async def test_not_found_falls_through(self, mock_request, hub, recorder):
        chain = ResolutionChain([_Fixed(NOT_FOUND), _Fixed(Success("globex"))], telemetry=hub)
        resolution = await chain.resolve(mock_request())
        assert resolution.tenant == "globex"
        assert recorder.events == []

    async def test_failed_falls_through_and_emits(self, mock_request, hub, recorder, caplog):
        chain = ResolutionChain(
            [SourceConfig(_Fixed(Failed("bad_input")), name="first"), _Fixed(Success("acme"))],
            telemetry=hub,
        )
        with caplog.at_level(logging.INFO, logger="fastapi_tenant_context.resolution.chain"):
            resolution = await chain.resolve(mock_request())

        assert resolution.tenant == "acme"
        assert recorder.of(SOURCE_ERROR) == [{"strategy_id": "first", "reason": "bad_input"}]
        assert "bad_input" in caplog.text

    async def test_all_fall_through_returns_none(self, mock_request, hub):
        chain = ResolutionChain([_Fixed(NOT_FOUND), _Fixed(Failed("x"))], telemetry=hub)
        assert await chain.resolve(mock_request()) is None

    async def test_empty_chain(self, mock_request, hub):
        assert await ResolutionChain([], telemetry=hub).resolve(mock_request()) is None

    async def test_each_source_called_once_in_order(self, mock_request, hub):
        calls: list[str] = []

        def make(name, outcome):
            src = MagicMock()
            src.source_id = name
            src.extract.side_effect = lambda req, opts: calls.append(name) or outcome
            return src

        chain = ResolutionChain(
            [make("a", NOT_FOUND), make("b", Failed("r")), make("c", Success("t")), make("d", NOT_FOUND)],
            telemetry=hub,
        )
        await chain.resolve(mock_request())
        assert calls == ["a", "b", "c"]

    async def test_options_passed_verbatim(self, mock_request, hub):
        src = _spy()
        opts = {"header": "x-org", "extra": 1}
        await ResolutionChain([(src, opts)], telemetry=hub).resolve(mock_request())
        src.extract.assert_called_once()
        assert src.extract.call_args.args[1] is opts

    async def test_request_not_mutated(self, hub):
        req = MagicMock()
        req.headers = Headers(headers={"x-tenant-id": "acme"})
        await ResolutionChain(["header"], telemetry=hub).resolve(req)
        assert req.headers.items() == [("x-tenant-id", "acme")]


# ──────────────────────────── Fault containment ───────────────────────────────


class TestFaults:
    async def test_exception_is_contained(self, mock_request, hub, recorder, caplog):
        chain = ResolutionChain([_Raising(), _Fixed(Success("acme"))], telemetry=hub)

        with caplog.at_level(logging.WARNING):
            resolution = await chain.resolve(mock_request())

        assert resolution.tenant == "acme"
        [payload] = recorder.of(SOURCE_ERROR)
        assert payload["strategy_id"] == "raising"
        assert payload["reason"] == "RuntimeError: backend unavailable"
        assert "'raising' faulted" in caplog.text

    async def test_only_faulting_source_returns_none(self, mock_request, hub):
        assert await ResolutionChain([_Raising()], telemetry=hub).resolve(mock_request()) is None

    async def test_entry_without_extract(self, mock_request, hub, recorder):
        chain = ResolutionChain([object(), _Fixed(Success("acme"))], telemetry=hub)
        resolution = await chain.resolve(mock_request())
        assert resolution.tenant == "acme"
        [payload] = recorder.of(SOURCE_ERROR)
        assert payload["strategy_id"] == "object"
        assert "extract" in payload["reason"]

    async def test_non_mapping_options(self, mock_request, hub, recorder):
        src = _spy()
        chain = ResolutionChain([(src, ["not", "a", "mapping"]), _Fixed(Success("acme"))], telemetry=hub)
        resolution = await chain.resolve(mock_request())
        assert resolution.tenant == "acme"
        src.extract.assert_not_called()
        assert "options must be a mapping" in recorder.of(SOURCE_ERROR)[0]["reason"]

    @pytest.mark.parametrize("bad", [None, "acme", {"tenant": "acme"}, ("ok", "acme")])
    async def test_non_outcome_return(self, mock_request, hub, recorder, bad):
        chain = ResolutionChain([_Fixed(bad), _Fixed(Success("acme"))], telemetry=hub)
        resolution = await chain.resolve(mock_request())
        assert resolution.tenant == "acme"
        assert "instead of an extraction outcome" in recorder.of(SOURCE_ERROR)[0]["reason"]

    async def test_async_source_raising(self, mock_request, hub, recorder):
        class Broken:
            source_id = "broken-async"

            async def extract(self, request, options):
                raise ConnectionError("timeout")

        chain = ResolutionChain([Broken(), "header"], telemetry=hub)
        resolution = await chain.resolve(mock_request(headers={"x-tenant-id": "acme"}))
        assert resolution.source == "header"
        assert recorder.of(SOURCE_ERROR)[0]["strategy_id"] == "broken-async"

    async def test_emit_events_disabled(self, mock_request, hub, recorder):
        chain = ResolutionChain([_Raising(), _Fixed(Failed("x"))], telemetry=hub, emit_events=False)
        assert await chain.resolve(mock_request()) is None
        assert recorder.events == []


# ────────────────────────────── Entry shapes ──────────────────────────────────


class TestEntries:
    async def test_identifiers_resolved(self, mock_request, hub):
        chain = ResolutionChain(["header", "subdomain"], telemetry=hub)
        assert [e.source_id for e in chain.entries] == ["header", "subdomain"]
        resolution = await chain.resolve(mock_request(host="acme.example.com"))
        assert resolution.tenant == "acme"
        assert resolution.source == "subdomain"
        assert resolution.metadata == {"source": "subdomain", "raw": "acme.example.com"}

    async def test_identifier_with_options(self, mock_request, hub):
        chain = ResolutionChain([("header", {"header": "x-org"})], telemetry=hub)
        resolution = await chain.resolve(mock_request(headers={"x-org": "globex"}))
        assert resolution.tenant == "globex"

    async def test_class_entry_instantiated(self, mock_request, hub):
        chain = ResolutionChain([HeaderTenantSource], telemetry=hub)
        assert isinstance(chain.entries[0].source, HeaderTenantSource)

    async def test_async_source(self, mock_request, hub):
        chain = ResolutionChain([(_AsyncSource(), {"tenant": "acme"})], telemetry=hub)
        resolution = await chain.resolve(mock_request())
        assert resolution.tenant == "acme"
        assert resolution.source == "async-lookup"

    async def test_named_entry(self, mock_request, hub):
        chain = ResolutionChain([SourceConfig("header", name="primary-header")], telemetry=hub)
        resolution = await chain.resolve(mock_request(headers={"x-tenant-id": "acme"}))
        assert resolution.source == "primary-header"

    def test_unknown_identifier_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ResolutionChain(["cookie"])
        assert exc_info.value.parameter == "sources"
        assert "cookie" in exc_info.value.reason

    async def test_metadata_not_a_mapping_is_dropped(self, mock_request, hub):
        chain = ResolutionChain([_Fixed(Success("acme", metadata=None))], telemetry=hub)
        resolution = await chain.resolve(mock_request())
        assert resolution.metadata == {}
