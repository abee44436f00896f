"""
Tests for the market data sources, using httpx.MockTransport in place of the live API.
"""
from decimal import Decimal

import httpx
import pytest

from neuracoin.services.market_data import (
    FALLBACK_ASSETS,
    CoinGeckoMarketData,
    StaticMarketData,
)

MARKETS_PAYLOAD = [
    {
        "id": "bitcoin",
        "symbol": "btc",
        "name": "Bitcoin",
        "image": "https://example.test/btc.png",
        "current_price": 61234.5,
        "price_change_percentage_24h": 1.25,
        "market_cap": 1200000000000,
        "total_volume": 35000000000,
    },
    {"id": "broken", "symbol": "brk"},
    {
        "id": "ethereum",
        "symbol": "eth",
        "name": "Ethereum",
        "current_price": 3012.1,
    },
]


def make_source(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://api.test")
    kwargs.setdefault("retry_delay", 0)
    return CoinGeckoMarketData(client=client, **kwargs)


async def test_list_top_maps_rows_and_skips_malformed():
    def handler(request: httpx.Request):
        assert request.url.path == "/coins/markets"
        assert request.url.params["vs_currency"] == "usd"
        return httpx.Response(200, json=MARKETS_PAYLOAD)

    source = make_source(handler)
    assets = await source.list_top(10)

    assert [a.id for a in assets] == ["bitcoin", "ethereum"]
    assert assets[0].current_price == Decimal("61234.5")
    assert assets[0].price_change_24h_percent == Decimal("1.25")
    await source.client.aclose()


async def test_list_top_is_cached():
    calls = []

    def handler(request: httpx.Request):
        calls.append(request.url.path)
        return httpx.Response(200, json=MARKETS_PAYLOAD)

    source = make_source(handler, cache_seconds=60)
    await source.list_top(10)
    await source.list_top(5)

    assert len(calls) == 1
    await source.client.aclose()


async def test_list_top_falls_back_after_retries():
    calls = []

    def handler(request: httpx.Request):
        calls.append(request)
        return httpx.Response(503)

    source = make_source(handler, max_retries=2)
    assets = await source.list_top(3)

    assert len(calls) == 3
    assert assets == FALLBACK_ASSETS[:3]
    await source.client.aclose()


async def test_retry_recovers_from_transient_error():
    attempts = {"n": 0}

    def handler(request: httpx.Request):
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"bitcoin": {"usd": 60000.12}})

    source = make_source(handler, max_retries=3)
    prices = await source.get_prices(["bitcoin"])

    assert prices == {"bitcoin": Decimal("60000.12")}
    assert attempts["n"] == 2
    await source.client.aclose()


async def test_get_prices_skips_unquoted_ids():
    def handler(request: httpx.Request):
        assert request.url.params["ids"] == "bitcoin,solana"
        return httpx.Response(200, json={"bitcoin": {"usd": 60000}, "solana": {}})

    source = make_source(handler)
    prices = await source.get_prices(["solana", "bitcoin", "bitcoin"])

    assert prices == {"bitcoin": Decimal("60000")}
    await source.client.aclose()


async def test_get_prices_falls_back_to_empty_map():
    def handler(request: httpx.Request):
        return httpx.Response(500, text="upstream down")

    source = make_source(handler, max_retries=1)
    assert await source.get_prices(["bitcoin"]) == {}
    await source.client.aclose()


async def test_get_asset_looks_up_top_list():
    def handler(request: httpx.Request):
        return httpx.Response(200, json=MARKETS_PAYLOAD)

    source = make_source(handler)
    asset = await source.get_asset("ethereum")

    assert asset.name == "Ethereum"
    assert await source.get_asset("unknown-coin") is None
    await source.client.aclose()


async def test_aclose_leaves_injected_client_open():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])))
    source = CoinGeckoMarketData(client=client)

    await source.aclose()

    assert not client.is_closed
    await client.aclose()


async def test_static_market_set_price():
    market = StaticMarketData()
    market.set_price("cardano", Decimal("0.5"))

    prices = await market.get_prices(["cardano", "unknown"])
    assert prices == {"cardano": Decimal("0.5")}
    asset = await market.get_asset("cardano")
    assert asset.current_price == Decimal("0.5")


@pytest.mark.parametrize("limit", [1, 5])
async def test_static_market_respects_limit(limit):
    assets = await StaticMarketData().list_top(limit)
    assert len(assets) == limit
