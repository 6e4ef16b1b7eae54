"""
Tests for nisa_signals/api (FastAPI app, routes, request schema).

``create_app()`` receives an injected orchestrator, so no network is touched.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from nisa_signals.api.app import create_app
from nisa_signals.config import AppConfig, AppViewsConfig, MarketDataConfig, ViewSeed
from nisa_signals.models.candidate import RankedItem, RecommendationLists
from nisa_signals.pipeline.recommend import UniverseFetchError


class SpyOrchestrator:
    def __init__(self, result=None, error=None):
        self.result = result or RecommendationLists()
        self.error = error
        self.calls: list[dict] = []

    async def build(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def spy() -> SpyOrchestrator:
    return SpyOrchestrator(
        RecommendationLists(
            popular=[RankedItem(symbol="AAPL", rank=1, score=0.9, components={"appViews": 10})],
            buy_candidates=[RankedItem(symbol="VOO", rank=1, score=0.5, buy_score=85.0)],
            pool_size=2,
        )
    )


@pytest.fixture
def client(spy) -> TestClient:
    return TestClient(create_app(config=AppConfig(), orchestrator=spy))


def _score_body(daily, monthly, **extra) -> dict:
    body = {
        "dailies": [p.model_dump(mode="json", by_alias=True) for p in daily],
        "monthlies": [p.model_dump(mode="json", by_alias=True) for p in monthly],
    }
    body.update(extra)
    return body


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


# ── GET /recommend ────────────────────────────────────────────────────────────

class TestRecommend:
    def test_camel_case_lists(self, client):
        resp = client.get("/recommend", params={"apiKey": "k"})
        assert resp.status_code == 200
        data = resp.json()
        assert set(data) >= {"popular", "etfs", "buyCandidates", "poolSize", "errors"}
        assert data["popular"][0]["symbol"] == "AAPL"
        assert data["popular"][0]["components"] == {"appViews": 10}
        assert data["buyCandidates"][0]["buyScore"] == 85.0

    def test_query_forwarded(self, client, spy):
        client.get(
            "/recommend",
            params=[("apiKey", "k"), ("symbols", "voo,aapl"), ("symbols", "MSFT"),
                    ("limit", "3"), ("mode", "swing")],
        )
        call = spy.calls[0]
        assert call["api_key"] == "k"
        assert call["symbols"] == ["voo", "aapl", "MSFT"]
        assert call["limit"] == 3
        assert call["mode"] == "swing"

    def test_missing_api_key_is_400(self, client):
        assert client.get("/recommend").status_code == 400

    def test_default_api_key_from_config(self, spy):
        config = AppConfig(market_data=MarketDataConfig(default_api_key="env-key"))
        client = TestClient(create_app(config=config, orchestrator=spy))
        assert client.get("/recommend").status_code == 200
        assert spy.calls[0]["api_key"] == "env-key"

    def test_invalid_mode_is_422(self, client):
        assert client.get("/recommend", params={"apiKey": "k", "mode": "day"}).status_code == 422

    def test_universe_failure_is_502(self):
        spy = SpyOrchestrator(error=UniverseFetchError("listing down"))
        client = TestClient(create_app(config=AppConfig(), orchestrator=spy))
        resp = client.get("/recommend", params={"apiKey": "k"})
        assert resp.status_code == 502
        assert "listing down" in resp.json()["detail"]


# ── Served app over a fake source ─────────────────────────────────────────────

class TestServedRecommendations:
    def test_requested_symbols_accumulate_into_popular(self, make_source):
        source = make_source(universe=["AAPL", "MSFT", "VOO"])
        app = create_app(config=AppConfig(), source=source)
        client = TestClient(app)
        for _ in range(10):
            resp = client.get("/recommend", params={"apiKey": "k", "symbols": "AAPL,MSFT"})
        assert resp.status_code == 200
        popular = resp.json()["popular"]
        assert [item["symbol"] for item in popular] == ["AAPL", "MSFT"]
        assert popular[0]["appViews"] == 10

    def test_seeded_views_populate_popular(self, make_source):
        config = AppConfig(app_views=AppViewsConfig(seed=[
            ViewSeed(symbol="AAPL", views=1923),
            ViewSeed(symbol="msft", views=1640),
        ]))
        client = TestClient(create_app(config=config, source=make_source(universe=["VOO"])))
        resp = client.get("/recommend", params={"apiKey": "k"})
        assert [item["symbol"] for item in resp.json()["popular"]] == ["AAPL", "MSFT"]
        assert resp.json()["poolSize"] == 3

    def test_duplicate_symbols_count_once(self, make_source):
        app = create_app(config=AppConfig(), source=make_source())
        TestClient(app).get("/recommend", params=[("apiKey", "k"), ("symbols", "voo,VOO")])
        assert app.state.app_views.views("VOO") == 1

    def test_score_records_symbol_view(self, uptrend_daily, uptrend_monthly, spy):
        app = create_app(config=AppConfig(), orchestrator=spy)
        client = TestClient(app)
        body = _score_body(uptrend_daily, uptrend_monthly, symbol="schd")
        assert client.post("/score", json=body).status_code == 200
        client.post("/score", json=_score_body(uptrend_daily, uptrend_monthly))
        assert app.state.app_views.views("SCHD") == 1
        assert len(app.state.app_views) == 1


# ── POST /score ───────────────────────────────────────────────────────────────

class TestScore:
    def test_uptrend_buy(self, client, uptrend_daily, uptrend_monthly):
        resp = client.post("/score", json=_score_body(uptrend_daily, uptrend_monthly))
        assert resp.status_code == 200
        data = resp.json()
        assert data["decision"] == "BUY"
        assert data["confidence"] == pytest.approx(0.8)
        assert data["horizon"] == "long"
        assert "distFrom52wHigh" in data["metrics"]
        assert sum(r["weight"] for r in data["reasons"] + data["counters"]) == 6

    def test_swing_mode(self, client, uptrend_daily, uptrend_monthly):
        body = _score_body(uptrend_daily, uptrend_monthly, mode="swing")
        assert client.post("/score", json=body).json()["horizon"] == "swing"

    def test_anomaly_abstains(self, client, make_daily, uptrend_monthly):
        body = _score_body(make_daily([100.0, 100.0, 140.0]), uptrend_monthly)
        data = client.post("/score", json=body).json()
        assert data["decision"] == "ABSTAIN"
        assert data["confidence"] == pytest.approx(0.1)
        assert data["counters"][0]["weight"] == -1

    def test_timeframe_months(self, client, uptrend_daily, uptrend_monthly):
        body = _score_body(uptrend_daily, uptrend_monthly, timeframeMonths=2)
        data = client.post("/score", json=body).json()
        # 42 bars: too short for SMA50 / SMA200
        assert data["metrics"]["sma200"] is None
        assert data["metrics"]["sma20"] is not None

    def test_price_scale(self, client, uptrend_daily, uptrend_monthly):
        body = _score_body(uptrend_daily, uptrend_monthly, priceScale=10)
        data = client.post("/score", json=body).json()
        assert data["metrics"]["sma20"] == pytest.approx(1249.5, rel=1e-9)

    def test_unordered_dates_rejected(self, client, uptrend_daily, uptrend_monthly):
        body = _score_body(list(reversed(uptrend_daily)), uptrend_monthly)
        assert client.post("/score", json=body).status_code == 422

    def test_missing_series_rejected(self, client):
        assert client.post("/score", json={"dailies": []}).status_code == 422

    def test_negative_price_rejected(self, client, uptrend_daily, uptrend_monthly):
        body = _score_body(uptrend_daily, uptrend_monthly)
        body["dailies"][0]["close"] = -1
        assert client.post("/score", json=body).status_code == 422

    def test_non_positive_price_scale_rejected(self, client, uptrend_daily, uptrend_monthly):
        body = _score_body(uptrend_daily, uptrend_monthly, priceScale=0)
        assert client.post("/score", json=body).status_code == 422

    def test_empty_series_abstain(self, client):
        data = client.post("/score", json={"dailies": [], "monthlies": []}).json()
        assert data["decision"] == "ABSTAIN"
