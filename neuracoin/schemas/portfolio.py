"""Portfolio and Market Schemas"""
from pydantic import BaseModel
from decimal import Decimal
from typing import Dict, List

from neuracoin.ledger.types import Holding


class HoldingsResponse(BaseModel):
    user_id: str
    holdings: List[Holding]
    total_holdings: int


class MarketPricesResponse(BaseModel):
    """Prices keyed by asset id; ids the source could not price are left out"""
    currency: str
    prices: Dict[str, Decimal]
