from fastapi import Request

from neuracoin.services.locks import UserLockRegistry
from neuracoin.services.market_data import MarketDataSource


def get_market(request: Request) -> MarketDataSource:
    """Market data source created in the app lifespan"""
    return request.app.state.market


def get_locks(request: Request) -> UserLockRegistry:
    """Process-wide per-user lock registry, shared with the background refresher"""
    return request.app.state.locks
