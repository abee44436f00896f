from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from neuracoin.api.deps import get_locks, get_market
from neuracoin.database import get_db
from neuracoin.ledger.errors import PersistenceError, WalletNotFoundError
from neuracoin.ledger.types import PortfolioSummary
from neuracoin.schemas.portfolio import HoldingsResponse
from neuracoin.services.locks import UserLockRegistry
from neuracoin.services.market_data import MarketDataSource
from neuracoin.services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/portfolio", tags=["Portfolio"])


def _portfolio_error(e: Exception, user_id: str) -> HTTPException:
    if isinstance(e, WalletNotFoundError):
        return HTTPException(
            status_code=404,
            detail={
                "error": "Wallet Not Found",
                "message": str(e),
                "user_id": user_id
            }
        )
    return HTTPException(
        status_code=503,
        detail={
            "error": "Storage Unavailable",
            "message": str(e)
        }
    )


@router.get("/{user_id}/holdings", response_model=HoldingsResponse)
async def get_holdings(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    market: MarketDataSource = Depends(get_market)
):
    """
    Current holdings with their valuation

    Example:
    ```
    GET /api/v1/portfolio/user_123/holdings
    ```
    """
    service = PortfolioService(db, market)

    try:
        holdings = await service.get_holdings(user_id)
        return HoldingsResponse(user_id=user_id, holdings=holdings, total_holdings=len(holdings))

    except (WalletNotFoundError, PersistenceError) as e:
        raise _portfolio_error(e, user_id)


@router.get("/{user_id}/summary", response_model=PortfolioSummary)
async def get_summary(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    market: MarketDataSource = Depends(get_market)
):
    """Portfolio totals with best and worst performer"""
    service = PortfolioService(db, market)

    try:
        return await service.get_summary(user_id)

    except (WalletNotFoundError, PersistenceError) as e:
        raise _portfolio_error(e, user_id)


@router.post("/{user_id}/refresh", response_model=PortfolioSummary)
async def refresh_portfolio(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    market: MarketDataSource = Depends(get_market),
    locks: UserLockRegistry = Depends(get_locks)
):
    """
    Revalue holdings at current market prices

    Holdings the market cannot price keep their last known price.
    """
    service = PortfolioService(db, market, locks)

    try:
        return await service.refresh(user_id)

    except (WalletNotFoundError, PersistenceError) as e:
        raise _portfolio_error(e, user_id)
    except Exception as e:
        await db.rollback()
        logger.error(f"Portfolio refresh failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={
                "error": "Refresh Failed",
                "message": f"Refresh failed: {str(e)}",
                "type": type(e).__name__
            }
        )
