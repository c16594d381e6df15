"""Tests for the dashboard HTTP API.

The app is built without the production lifespan; a real engine is wired
to a fake page fetcher serving two days of hourly candles.
"""

import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from collector.collection.engine import CollectionEngine
from collector.collection.rate_budget import RateBudget
from collector.config import AppSettings
from collector.dashboard.app import create_dashboard_app
from collector.models import Candle

HOUR = 3_600_000
JAN_1_2023_MS = 1_672_531_200_000

START_BODY = {
    "symbol": "btcusdt",
    "timeframe": "1h",
    "start_date": "2023-01-01",
    "end_date": "2023-01-01",
    "delay_ms": 0,
}


async def _serve(symbol, timeframe, start_time_ms, page_limit=1000):
    end = JAN_1_2023_MS + 48 * HOUR
    return [
        Candle(ts, 1.0, 2.0, 0.5, 1.5, 10.0)
        for ts in range(max(start_time_ms, JAN_1_2023_MS), end, HOUR)[:page_limit]
    ]


@pytest.fixture
def fetcher() -> MagicMock:
    fetcher = MagicMock()
    fetcher.fetch_page = AsyncMock(side_effect=_serve)
    return fetcher


@pytest.fixture
def client(mock_settings: AppSettings, fetcher: MagicMock):
    app = create_dashboard_app()
    app.state.settings = mock_settings
    app.state.rate_budget = RateBudget(max_requests_per_minute=60_000)
    app.state.engine = CollectionEngine(fetcher, mock_settings.collection)
    with TestClient(app) as test_client:
        yield test_client


def _wait_for_state(client: TestClient, state: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        status = client.get("/api/status").json()
        if status["state"] == state:
            return status
        time.sleep(0.02)
    raise AssertionError(f"engine never reached {state!r}")


class TestReadEndpoints:
    def test_catalog(self, client: TestClient) -> None:
        body = client.get("/api/catalog").json()

        assert "BTCUSDT" in body["symbols"]
        assert len(body["symbols"]) == 10
        assert body["timeframes"][0] == {"label": "1 Minute", "value": "1m"}
        assert [tf["value"] for tf in body["timeframes"]] == ["1m", "5m", "1h", "1d"]

    def test_estimate(self, client: TestClient) -> None:
        response = client.get(
            "/api/estimate",
            params={
                "symbol": "BTCUSDT",
                "timeframe": "1m",
                "start_date": "2023-01-01",
                "end_date": "2023-12-31",
                "delay_ms": 250,
            },
        )

        body = response.json()
        assert response.status_code == 200
        assert body["total_candles"] == 525_599
        assert body["total_requests"] == 526
        assert body["effective_delay_ms"] == 250
        assert (body["minutes"], body["seconds"]) == (2, 11)

    def test_estimate_rejects_unknown_timeframe(self, client: TestClient) -> None:
        response = client.get(
            "/api/estimate",
            params={"symbol": "BTCUSDT", "timeframe": "4h", "start_date": "2023-01-01", "end_date": "2023-01-02"},
        )

        assert response.status_code == 422

    def test_idle_status(self, client: TestClient) -> None:
        body = client.get("/api/status").json()

        assert body["state"] == "idle"
        assert body["stats"] is None
        assert body["rate_limit"]["max_requests_per_minute"] == 60_000

    def test_export_without_data_is_404(self, client: TestClient) -> None:
        assert client.get("/api/export").status_code == 404


class TestCollectionLifecycle:
    def test_run_to_completion_and_export(self, client: TestClient) -> None:
        response = client.post("/actions/collection/start", json=START_BODY)
        assert response.status_code == 202
        assert response.json()["symbol"] == "BTCUSDT"

        status = _wait_for_state(client, "stopped")
        assert status["stop_reason"] == "completed"
        assert status["stats"]["total_candles"] == 24

        series = client.get("/api/series", params={"tail": 5}).json()
        assert series["count"] == 24
        assert len(series["candles"]) == 5

        export = client.get("/api/export")
        assert export.status_code == 200
        assert export.headers["content-disposition"] == 'attachment; filename="BTCUSDT_1h_dataset.csv"'
        lines = export.text.split("\n")
        assert lines[0] == "date,time,open,high,low,close,volume"
        assert len(lines) == 25

        logs = client.get("/api/logs").json()
        assert logs[0]["message"] == "Collection completed. Total candles: 24"
        assert logs[0]["level"] == "success"

    def test_second_start_conflicts_then_cancel(self, client: TestClient) -> None:
        slow = {**START_BODY, "delay_ms": 60_000}
        assert client.post("/actions/collection/start", json=slow).status_code == 202
        _wait_for_state(client, "running")

        conflict = client.post("/actions/collection/start", json=START_BODY)
        assert conflict.status_code == 409

        paused = client.post("/actions/collection/pause").json()
        assert paused["state"] == "paused"
        resumed = client.post("/actions/collection/resume").json()
        assert resumed["state"] == "running"

        cancelled = client.post("/actions/collection/cancel").json()
        assert cancelled["state"] == "stopped"
        assert cancelled["stop_reason"] == "cancelled"

    def test_invalid_start_body(self, client: TestClient) -> None:
        response = client.post("/actions/collection/start", json={**START_BODY, "delay_ms": -5})

        assert response.status_code == 422


class TestWebSocket:
    def test_snapshot_on_connect(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            event = ws.receive_json()

        assert event["type"] == "snapshot"
        assert event["data"]["status"]["state"] == "idle"
        assert event["data"]["series"] == {"count": 0, "candles": []}
        assert event["data"]["logs"] == []


class TestRateLimit:
    def test_update(self, client: TestClient) -> None:
        body = client.post("/actions/rate-limit", json={"max_requests_per_minute": 600}).json()

        assert body["max_requests_per_minute"] == 600
        assert body["safe_interval_ms"] == 100

    @pytest.mark.parametrize("value", [30, 5000])
    def test_out_of_bounds_rejected(self, client: TestClient, value: int) -> None:
        response = client.post("/actions/rate-limit", json={"max_requests_per_minute": value})

        assert response.status_code == 422
