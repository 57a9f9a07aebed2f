import json
import time
from decimal import Decimal

import httpx
import pytest

from rate_relay.core.errors import ArtifactError, DeadlineExceeded, ParseError, UpstreamError
from rate_relay.client import RelayClient
from rate_relay.main import create_app
from rate_relay.models import RateQuote
from rate_relay.services.money import format_bid, round2

from .fakes import RecordingStore, StaticSource, stalling_transport

RELAY_URL = "http://relay.test/cotacao"


def _relay_transport(bid, seen=None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(200, content=json.dumps({"bid": bid}).encode())

    return httpx.MockTransport(handler)


class TestFormatting:
    def test_bid_rendered_with_two_decimals(self):
        assert format_bid(Decimal("5.1234")) == "Dólar: 5.12"

    def test_half_up_rounding(self):
        assert round2(Decimal("5.125")) == Decimal("5.13")
        assert round2(5.5678) == Decimal("5.57")

    def test_whole_number_is_padded(self):
        assert format_bid(Decimal("5")) == "Dólar: 5.00"


class TestRelayClient:
    @pytest.mark.asyncio
    async def test_run_writes_formatted_bid(self, tmp_path):
        artifact = tmp_path / "cotacao.txt"
        seen = []
        client = RelayClient(RELAY_URL, artifact, transport=_relay_transport(5.1234, seen))
        path = await client.run()
        assert path == artifact
        assert artifact.read_text(encoding="utf-8") == "Dólar: 5.12"
        assert 0 < int(seen[0].headers["X-Request-Timeout-Ms"]) <= 300

    @pytest.mark.asyncio
    async def test_repeated_runs_overwrite_artifact(self, tmp_path):
        artifact = tmp_path / "cotacao.txt"
        await RelayClient(RELAY_URL, artifact, transport=_relay_transport(5.1234)).run()
        await RelayClient(RELAY_URL, artifact, transport=_relay_transport(5.5678)).run()
        assert artifact.read_text(encoding="utf-8") == "Dólar: 5.57"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["cotacao.txt"]

    @pytest.mark.asyncio
    async def test_stalled_relay_aborts_without_artifact(self, tmp_path):
        artifact = tmp_path / "cotacao.txt"
        client = RelayClient(RELAY_URL, artifact, transport=stalling_transport())
        started = time.monotonic()
        with pytest.raises(DeadlineExceeded):
            await client.run()
        assert time.monotonic() - started < 0.8
        assert not artifact.exists()

    @pytest.mark.asyncio
    async def test_failed_run_leaves_previous_artifact_untouched(self, tmp_path):
        artifact = tmp_path / "cotacao.txt"
        artifact.write_text("Dólar: 4.99", encoding="utf-8")
        client = RelayClient(
            RELAY_URL, artifact, timeout=0.05, transport=stalling_transport()
        )
        with pytest.raises(DeadlineExceeded):
            await client.run()
        assert artifact.read_text(encoding="utf-8") == "Dólar: 4.99"

    @pytest.mark.asyncio
    async def test_server_error_is_upstream_error(self, tmp_path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream fetch deadline of 200ms exceeded")

        artifact = tmp_path / "cotacao.txt"
        client = RelayClient(RELAY_URL, artifact, transport=httpx.MockTransport(handler))
        with pytest.raises(UpstreamError) as info:
            await client.run()
        assert info.value.status == 500
        assert not artifact.exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body", [b"not json", b"{}", b'{"bid": "abc"}', b'{"bid": 1e30}']
    )
    async def test_undecodable_body_is_parse_error(self, tmp_path, body):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body)

        artifact = tmp_path / "cotacao.txt"
        client = RelayClient(RELAY_URL, artifact, transport=httpx.MockTransport(handler))
        with pytest.raises(ParseError):
            await client.run()
        assert not artifact.exists()

    def test_unwritable_artifact_is_artifact_error(self, tmp_path):
        target = tmp_path / "taken"
        target.mkdir()
        client = RelayClient(RELAY_URL, target)
        with pytest.raises(ArtifactError):
            client.write_artifact(RateQuote(bid=Decimal("5.1234")))
        assert [p.name for p in tmp_path.iterdir()] == ["taken"]

    @pytest.mark.asyncio
    async def test_client_against_live_app(self, tmp_path, settings, record):
        app = create_app(settings, source=StaticSource(record), store=RecordingStore())
        artifact = tmp_path / "cotacao.txt"
        client = RelayClient(
            "http://relay/cotacao", artifact, transport=httpx.ASGITransport(app=app)
        )
        await client.run()
        await app.state.relay.drain()
        assert artifact.read_text(encoding="utf-8") == "Dólar: 5.12"
