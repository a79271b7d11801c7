"""End-to-end tests for the HTTP endpoints."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FakeFetcher
from live_premiums.core.config import Settings
from live_premiums.main import create_app
from live_premiums.services.chain_cache import ChainCache
from live_premiums.services.nse import UpstreamError


def _client(fetcher, clock, **kwargs):
    cache = ChainCache(fetcher, ttl=9, clock=clock)
    return TestClient(create_app(chain_cache=cache, background_refresh=False, **kwargs))


def test_module_app_is_fastapi():
    from live_premiums import main

    assert isinstance(main.app, FastAPI)


def test_fetch_live_with_expiry(chain, clock):
    client = _client(FakeFetcher(chain), clock)

    res = client.get("/fetch-live", params={"sellCall": "26500", "sellPut": "25900", "expiry": "20250227"})

    assert res.status_code == 200
    assert res.json() == {
        "sellCallPremium": 120.25,
        "sellPutPremium": 95.5,
        "hedgeCallPremium": 0,
        "hedgePutPremium": 0,
        "expiry": "27-Feb-2025",
    }


def test_fetch_live_with_hedges_and_no_expiry(chain, clock):
    client = _client(FakeFetcher(chain), clock)

    res = client.get("/fetch-live", params={
        "sellCall": "26500", "sellPut": "25900", "hedgeCall": "27500", "hedgePut": "99999",
    })

    body = res.json()
    assert res.status_code == 200
    assert body["sellCallPremium"] == 210.0
    assert body["hedgeCallPremium"] == 8.4
    assert body["hedgePutPremium"] == 0
    assert body["expiry"] == "any"


def test_fetch_live_malformed_expiry_means_any(chain, clock):
    client = _client(FakeFetcher(chain), clock)

    res = client.get("/fetch-live", params={"sellCall": "26500", "sellPut": "25900", "expiry": "2025-02"})

    assert res.json()["expiry"] == "any"


@pytest.mark.parametrize("params", [{}, {"sellCall": "26500"}, {"sellPut": "25900"}, {"sellCall": "", "sellPut": "1"}])
def test_fetch_live_requires_sell_strikes(chain, clock, params):
    fetcher = FakeFetcher(chain)
    client = _client(fetcher, clock)

    res = client.get("/fetch-live", params=params)

    assert res.status_code == 400
    assert res.json() == {"error": "sellCall and sellPut required"}
    assert fetcher.calls == 0


def test_fetch_live_cold_upstream_failure(clock):
    client = _client(FakeFetcher(UpstreamError("down")), clock)

    res = client.get("/fetch-live", params={"sellCall": "26500", "sellPut": "25900"})

    assert res.status_code == 500
    assert res.json() == {"error": "No chain available"}


def test_fetch_live_unexpected_failure(clock):
    client = _client(FakeFetcher(RuntimeError("secret upstream detail")), clock)

    res = client.get("/fetch-live", params={"sellCall": "26500", "sellPut": "25900"})

    assert res.status_code == 500
    assert res.json() == {"error": "Failed to fetch live premiums"}


def test_fetch_live_serves_stale_chain(chain, clock):
    client = _client(FakeFetcher(chain, UpstreamError("down")), clock)
    client.get("/fetch-live", params={"sellCall": "26500", "sellPut": "25900"})
    clock.advance(60)

    res = client.get("/fetch-live", params={"sellCall": "26500", "sellPut": "25900", "expiry": "20250227"})

    assert res.status_code == 200
    assert res.json()["sellCallPremium"] == 120.25


def test_fetch_premiums(chain, clock):
    client = _client(FakeFetcher(chain), clock)

    res = client.get("/fetch-premiums", params={"call": "26500", "put": "25900"})

    assert res.status_code == 200
    assert res.json() == {"callPremium": 210.0, "putPremium": 95.5}


def test_fetch_premiums_requires_both_strikes(chain, clock):
    client = _client(FakeFetcher(chain), clock)

    res = client.get("/fetch-premiums", params={"call": "26500"})

    assert res.status_code == 400
    assert res.json() == {"error": "call and put required"}


def test_fetch_premiums_failure(clock):
    client = _client(FakeFetcher(UpstreamError("down")), clock)

    res = client.get("/fetch-premiums", params={"call": "26500", "put": "25900"})

    assert res.status_code == 500
    assert res.json() == {"error": "fetch_failed", "message": "No chain available"}


def test_option_chain_listing(chain, clock):
    client = _client(FakeFetcher(chain), clock)

    res = client.get("/api/v1/option-chain", params={"expiry": "20250227"})

    assert res.status_code == 200
    rows = res.json()
    assert [row["strike_price"] for row in rows] == [25900, 26500, 27500]
    assert rows[1] == {
        "strike_price": 26500,
        "expiry_date": "27-Feb-2025",
        "ce_last_price": 120.25,
        "pe_last_price": 610.0,
    }


def test_option_chain_listing_all_expiries(chain, clock):
    client = _client(FakeFetcher(chain), clock)

    rows = client.get("/api/v1/option-chain").json()

    assert len(rows) == 4
    assert [row["expiry_date"] for row in rows if row["strike_price"] == 26500] == ["27-Mar-2025", "27-Feb-2025"]


def test_option_chain_listing_cold_failure(clock):
    client = _client(FakeFetcher(UpstreamError("down")), clock)

    res = client.get("/api/v1/option-chain")

    assert res.status_code == 500
    assert res.json() == {"error": "No chain available"}


def test_chain_status(chain, clock):
    client = _client(FakeFetcher(chain), clock)
    assert client.get("/api/v1/chain-status").json()["has_snapshot"] is False

    client.get("/fetch-premiums", params={"call": "26500", "put": "25900"})
    clock.advance(2)
    body = client.get("/api/v1/chain-status").json()

    assert body["has_snapshot"] is True
    assert body["is_fresh"] is True
    assert body["age_seconds"] == 2
    assert body["row_count"] == 4


def test_unknown_route_uses_error_body(chain, clock):
    client = _client(FakeFetcher(chain), clock)

    res = client.get("/nope")

    assert res.status_code == 404
    assert "error" in res.json()


def test_lifespan_starts_and_stops_refresher(chain, clock):
    cache = ChainCache(FakeFetcher(chain), ttl=9, clock=clock)
    app = create_app(chain_cache=cache, config=Settings(refresh_interval_seconds=60), background_refresh=True)

    with TestClient(app) as client:
        assert app.state.chain_refresher.running
        client.get("/fetch-premiums", params={"call": "26500", "put": "25900"})
        assert cache.status().has_snapshot

    assert not app.state.chain_refresher.running
    assert not cache.status().has_snapshot
