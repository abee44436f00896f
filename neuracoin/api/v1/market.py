from fastapi import APIRouter, Depends, Query
from typing import List

from neuracoin.api.deps import get_market
from neuracoin.config import settings
from neuracoin.ledger.types import MarketAsset
from neuracoin.schemas.portfolio import MarketPricesResponse
from neuracoin.services.market_data import MarketDataSource

router = APIRouter(prefix="/market", tags=["Market"])


@router.get("/top", response_model=List[MarketAsset])
async def list_top_assets(
    limit: int = Query(settings.MARKET_TOP_LIMIT, ge=1, le=250),
    market: MarketDataSource = Depends(get_market)
):
    """
    Tradable assets ranked by market cap

    Example:
    ```
    GET /api/v1/market/top?limit=10
    ```
    """
    return await market.list_top(limit)


@router.get("/prices", response_model=MarketPricesResponse)
async def get_prices(
    ids: str = Query(..., min_length=1, description="Comma separated asset ids"),
    market: MarketDataSource = Depends(get_market)
):
    """
    Current prices for the given asset ids

    Example:
    ```
    GET /api/v1/market/prices?ids=bitcoin,ethereum
    ```
    """
    asset_ids = [i.strip() for i in ids.split(",") if i.strip()]
    prices = await market.get_prices(asset_ids)
    return MarketPricesResponse(currency=settings.MARKET_CURRENCY, prices=prices)
