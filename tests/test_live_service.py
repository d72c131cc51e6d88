"""Tests for the live departures passthrough."""

from unittest.mock import patch

import httpx
import pytest

from peatus_mcp.models.responses import LiveDeparture
from peatus_mcp.services import live_service


@pytest.fixture(autouse=True)
def reset_cache():
    """Reset the departures cache before and after each test."""
    live_service.reset_cache()
    yield
    live_service.reset_cache()


def _departure(route: str, minutes: int) -> LiveDeparture:
    return LiveDeparture(
        transport="bus",
        route=route,
        expected_time="14:00",
        schedule_time="14:00",
        expected_minutes=minutes,
        is_realtime=False,
    )


class FakeSiriClient:
    """Stands in for SiriClient; records how often the feed was hit."""

    calls = 0
    departures: list[LiveDeparture] = []
    error: Exception | None = None

    def __init__(self, settings):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def fetch_departures(self, stop_id, now):
        FakeSiriClient.calls += 1
        if FakeSiriClient.error is not None:
            raise FakeSiriClient.error
        return list(FakeSiriClient.departures)


@pytest.fixture
def fake_client():
    FakeSiriClient.calls = 0
    FakeSiriClient.departures = [_departure("17", 2), _departure("5", 4), _departure("17", 9)]
    FakeSiriClient.error = None
    with patch.object(live_service, "SiriClient", FakeSiriClient):
        yield FakeSiriClient


class TestGetLiveDepartures:
    async def test_returns_departures(self, fake_client):
        response = await live_service.get_live_departures("1234")

        assert response.available is True
        assert response.count == 3
        assert response.stop_id == "1234"
        assert response.fetched_at

    async def test_route_filter(self, fake_client):
        response = await live_service.get_live_departures("1234", route="17")

        assert response.route == "17"
        assert [d.expected_minutes for d in response.departures] == [2, 9]
        assert response.count == 2

    async def test_capped(self, fake_client):
        fake_client.departures = [_departure("17", i) for i in range(15)]

        response = await live_service.get_live_departures("1234")

        assert response.count == live_service.MAX_LIVE_DEPARTURES

    async def test_feed_failure_degrades(self, fake_client):
        fake_client.error = httpx.ConnectError("connection refused")

        response = await live_service.get_live_departures("1234")

        assert response.available is False
        assert response.departures == []
        assert response.count == 0

    @pytest.mark.parametrize(
        "error",
        [httpx.InvalidURL("Invalid URL"), ValueError("bad feed"), RuntimeError("boom")],
    )
    async def test_non_http_failure_degrades(self, fake_client, error):
        fake_client.error = error

        response = await live_service.get_live_departures("1234")

        assert response.available is False
        assert response.departures == []


class TestFetchDepartures:
    async def test_cached_per_stop(self, fake_client):
        await live_service.fetch_departures("1234")
        await live_service.fetch_departures("1234")
        assert fake_client.calls == 1

        await live_service.fetch_departures("5678")
        assert fake_client.calls == 2

    async def test_force_refresh(self, fake_client):
        await live_service.fetch_departures("1234")
        await live_service.fetch_departures("1234", force_refresh=True)
        assert fake_client.calls == 2

    async def test_failure_not_cached(self, fake_client):
        fake_client.error = httpx.ConnectError("connection refused")
        assert await live_service.fetch_departures("1234") is None

        fake_client.error = None
        departures = await live_service.fetch_departures("1234")
        assert departures is not None
        assert fake_client.calls == 2
