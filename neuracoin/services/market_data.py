import asyncio
import logging
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError

from neuracoin.config import settings
from neuracoin.ledger.types import MarketAsset

logger = logging.getLogger(__name__)


FALLBACK_ASSETS: List[MarketAsset] = [
    MarketAsset(
        id="bitcoin",
        symbol="btc",
        name="Bitcoin",
        image="https://assets.coingecko.com/coins/images/1/large/bitcoin.png",
        current_price=Decimal("43750.21"),
        price_change_24h_percent=Decimal("2.94"),
        market_cap=Decimal("857234000000"),
        total_volume=Decimal("23450000000"),
    ),
    MarketAsset(
        id="ethereum",
        symbol="eth",
        name="Ethereum",
        image="https://assets.coingecko.com/coins/images/279/large/ethereum.png",
        current_price=Decimal("2580.75"),
        price_change_24h_percent=Decimal("-1.19"),
        market_cap=Decimal("310450000000"),
        total_volume=Decimal("15670000000"),
    ),
    MarketAsset(
        id="binancecoin",
        symbol="bnb",
        name="BNB",
        image="https://assets.coingecko.com/coins/images/825/large/bnb-icon2_2x.png",
        current_price=Decimal("315.42"),
        price_change_24h_percent=Decimal("2.65"),
        market_cap=Decimal("47234000000"),
        total_volume=Decimal("890000000"),
    ),
    MarketAsset(
        id="cardano",
        symbol="ada",
        name="Cardano",
        image="https://assets.coingecko.com/coins/images/975/large/cardano.png",
        current_price=Decimal("0.45"),
        price_change_24h_percent=Decimal("4.65"),
        market_cap=Decimal("16000000000"),
        total_volume=Decimal("450000000"),
    ),
    MarketAsset(
        id="solana",
        symbol="sol",
        name="Solana",
        image="https://assets.coingecko.com/coins/images/4128/large/solana.png",
        current_price=Decimal("95.82"),
        price_change_24h_percent=Decimal("4.04"),
        market_cap=Decimal("45000000000"),
        total_volume=Decimal("2100000000"),
    ),
]


class MarketDataSource(ABC):
    """Supplies identity and current price for tradable assets"""

    top_limit: int = 50

    @abstractmethod
    async def list_top(self, limit: int = 50) -> List[MarketAsset]:
        pass

    @abstractmethod
    async def get_prices(self, asset_ids: Iterable[str]) -> Dict[str, Decimal]:
        pass

    async def get_asset(self, asset_id: str) -> Optional[MarketAsset]:
        """Look the id up in the tradable universe (the top list)"""
        for asset in await self.list_top(self.top_limit):
            if asset.id == asset_id:
                return asset
        return None

    async def aclose(self):
        pass


class StaticMarketData(MarketDataSource):
    """Fixed asset list, used offline and when the live API is down"""

    def __init__(self, assets: Optional[Iterable[MarketAsset]] = None):
        self.assets = list(assets) if assets is not None else list(FALLBACK_ASSETS)

    def set_price(self, asset_id: str, price: Decimal):
        self.assets = [
            a.model_copy(update={"current_price": price}) if a.id == asset_id else a
            for a in self.assets
        ]

    async def list_top(self, limit: int = 50) -> List[MarketAsset]:
        return self.assets[:limit]

    async def get_prices(self, asset_ids: Iterable[str]) -> Dict[str, Decimal]:
        wanted = set(asset_ids)
        return {a.id: a.current_price for a in self.assets if a.id in wanted}


class CoinGeckoMarketData(MarketDataSource):
    """
    Market data from the CoinGecko public API.

    Failed calls are retried with a fixed delay. When every attempt fails the
    top list falls back to FALLBACK_ASSETS and prices fall back to an empty
    map, so callers always get an answer.
    """

    def __init__(
        self,
        base_url: str = settings.MARKET_API_URL,
        currency: str = settings.MARKET_CURRENCY,
        timeout: float = settings.MARKET_TIMEOUT_SECONDS,
        max_retries: int = settings.MARKET_MAX_RETRIES,
        retry_delay: float = settings.MARKET_RETRY_DELAY_SECONDS,
        top_limit: int = settings.MARKET_TOP_LIMIT,
        cache_seconds: float = settings.MARKET_CACHE_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.currency = currency
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.top_limit = top_limit
        self.cache_seconds = cache_seconds

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

        self._snapshot: List[MarketAsset] = []
        self._snapshot_limit = 0
        self._snapshot_at = 0.0

        logger.info(f"CoinGeckoMarketData initialized. URL: {base_url}")

    async def _get_json(self, path: str, params: dict):
        attempts = self.max_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                response = await self.client.get(path, params=params)
                response.raise_for_status()
                return response.json(parse_float=Decimal)
            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                if attempt < attempts:
                    logger.warning(
                        f"Market API call {path} failed, retrying... "
                        f"({attempts - attempt} attempts left): {e}"
                    )
                    await asyncio.sleep(self.retry_delay)

        raise last_error

    def _cached_top(self, limit: int) -> Optional[List[MarketAsset]]:
        if not self._snapshot or self._snapshot_limit < limit:
            return None
        if time.monotonic() - self._snapshot_at > self.cache_seconds:
            return None
        return self._snapshot[:limit]

    async def list_top(self, limit: int = 50) -> List[MarketAsset]:
        cached = self._cached_top(limit)
        if cached is not None:
            return cached

        params = {
            "vs_currency": self.currency,
            "order": "market_cap_desc",
            "per_page": limit,
            "page": 1,
            "sparkline": "false",
        }
        try:
            raw = await self._get_json("/coins/markets", params)
            if not isinstance(raw, list):
                raise ValueError(f"Unexpected markets payload: {type(raw).__name__}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching top assets, using fallback data: {e}")
            return FALLBACK_ASSETS[:limit]

        assets = self._map_markets(raw)
        if not assets:
            logger.warning("Market API returned no usable assets, using fallback data")
            return FALLBACK_ASSETS[:limit]

        self._snapshot = assets
        self._snapshot_limit = limit
        self._snapshot_at = time.monotonic()
        return assets

    def _map_markets(self, rows: list) -> List[MarketAsset]:
        assets = []
        for row in rows:
            try:
                assets.append(MarketAsset(
                    id=row["id"],
                    symbol=row["symbol"],
                    name=row["name"],
                    image=row.get("image"),
                    current_price=row["current_price"],
                    price_change_24h_percent=row.get("price_change_percentage_24h"),
                    market_cap=row.get("market_cap"),
                    total_volume=row.get("total_volume"),
                ))
            except (KeyError, TypeError, ValidationError) as map_err:
                logger.warning(f"Skipping malformed market row: {map_err}")
                continue
        return assets

    async def get_prices(self, asset_ids: Iterable[str]) -> Dict[str, Decimal]:
        ids = sorted(set(asset_ids))
        if not ids:
            return {}

        params = {"ids": ",".join(ids), "vs_currencies": self.currency}
        try:
            raw = await self._get_json("/simple/price", params)
            if not isinstance(raw, dict):
                raise ValueError(f"Unexpected price payload: {type(raw).__name__}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching prices: {e}")
            return {}

        prices = {}
        for asset_id, quote in raw.items():
            price = quote.get(self.currency) if isinstance(quote, dict) else None
            if price is None:
                logger.warning(f"Skipping price without {self.currency} quote for {asset_id}")
                continue
            try:
                prices[asset_id] = Decimal(price)
            except (TypeError, ArithmeticError) as e:
                logger.warning(f"Skipping malformed price for {asset_id}: {e}")
        return prices

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()
