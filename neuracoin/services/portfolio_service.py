import logging
from decimal import Decimal
from typing import List, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from neuracoin.ledger.types import Holding, PortfolioSummary
from neuracoin.services.locks import UserLockRegistry
from neuracoin.services.market_data import MarketDataSource
from neuracoin.services.wallet_service import WalletService

logger = logging.getLogger(__name__)


class PortfolioService(WalletService):
    """Holdings, their valuation and the portfolio summary"""

    def __init__(
        self,
        db: AsyncSession,
        market: MarketDataSource,
        locks: Optional[UserLockRegistry] = None,
    ):
        super().__init__(db, locks)
        self.market = market

    async def get_holdings(self, user_id: str) -> List[Holding]:
        state = await self.load_state(user_id)
        return state.portfolio.holdings

    async def get_summary(self, user_id: str) -> PortfolioSummary:
        state = await self.load_state(user_id)
        return state.portfolio.summarize()

    async def revalue(self, user_id: str, prices: Mapping[str, Decimal]) -> PortfolioSummary:
        """Apply a price map to the user's holdings and persist the new prices"""
        async with self.unit_of_work(user_id):
            state = await self.load_state(user_id, for_update=True)
            touched = state.portfolio.revalue(prices)
            if touched:
                await self.save_state(state)
                await self.commit()

        logger.info(f"Revalued {touched} holdings for {user_id}")
        return state.portfolio.summarize()

    async def refresh(self, user_id: str) -> PortfolioSummary:
        """Fetch current prices for everything the user holds and revalue"""
        holdings = await self.get_holdings(user_id)
        if not holdings:
            return PortfolioSummary()

        prices = await self.market.get_prices([h.asset_id for h in holdings])
        if not prices:
            logger.warning(f"No prices available, holdings for {user_id} left unchanged")
        return await self.revalue(user_id, prices)
