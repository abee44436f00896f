import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from neuracoin.ledger.state import PORTFOLIO
from neuracoin.services.locks import UserLockRegistry
from neuracoin.services.market_data import MarketDataSource
from neuracoin.services.portfolio_service import PortfolioService
from neuracoin.storage import KeyValueStore

logger = logging.getLogger(__name__)


class PortfolioRefresher:
    """
    Revalues every stored portfolio on a fixed interval.

    Each user is refreshed in its own session under the same per-user lock
    the trades take, so a refresh never overwrites a trade committed in
    between.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        market: MarketDataSource,
        locks: UserLockRegistry,
        interval_minutes: float,
    ):
        self.session_factory = session_factory
        self.market = market
        self.locks = locks
        self.interval_seconds = interval_minutes * 60
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _user_ids(self) -> list:
        prefix = f"{PORTFOLIO}_"
        async with self.session_factory() as db:
            keys = await KeyValueStore(db).keys(prefix)
        return [key[len(prefix):] for key in keys]

    async def refresh_all(self) -> int:
        """Run one refresh cycle, returns how many users were refreshed"""
        refreshed = 0
        for user_id in await self._user_ids():
            async with self.session_factory() as db:
                service = PortfolioService(db, self.market, self.locks)
                try:
                    await service.refresh(user_id)
                    refreshed += 1
                except Exception as e:
                    logger.error(f"Portfolio refresh failed for {user_id}: {e}", exc_info=True)

        logger.info(f"Portfolio refresh cycle done: {refreshed} users")
        return refreshed

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.refresh_all()
            except Exception as e:
                logger.error(f"Portfolio refresh cycle failed: {e}", exc_info=True)

    def start(self):
        if self.interval_seconds <= 0:
            logger.info("Portfolio auto refresh disabled")
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Portfolio auto refresh every {self.interval_seconds:.0f}s")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Portfolio auto refresh stopped")
