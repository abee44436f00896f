"""Pydantic Schemas for Request/Response Validation"""
from neuracoin.schemas.wallet import (
    RewardRequest,
    WalletBalanceResponse,
    WalletResponse,
    ClearDataResponse,
)
from neuracoin.schemas.trade import TradeRequest
from neuracoin.schemas.portfolio import HoldingsResponse, MarketPricesResponse

__all__ = [
    "RewardRequest",
    "WalletBalanceResponse",
    "WalletResponse",
    "ClearDataResponse",
    "TradeRequest",
    "HoldingsResponse",
    "MarketPricesResponse",
]
