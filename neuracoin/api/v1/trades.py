from fastapi import APIRouter, Depends, HTTPException, Header, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from neuracoin.api.deps import get_locks, get_market
from neuracoin.config import settings
from neuracoin.database import get_db
from neuracoin.ledger.errors import (
    AssetNotFoundError,
    DuplicateRequestError,
    InsufficientFundsError,
    InsufficientHoldingError,
    LedgerValidationError,
    PersistenceError,
    WalletNotFoundError,
)
from neuracoin.ledger.types import TradeReceipt
from neuracoin.schemas.trade import TradeRequest
from neuracoin.services.locks import UserLockRegistry
from neuracoin.services.market_data import MarketDataSource
from neuracoin.services.trade_service import TradeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trades", tags=["Trades"])


def _trade_error(e: Exception, request: TradeRequest) -> HTTPException:
    """Map a ledger failure to the HTTP error the client sees"""
    if isinstance(e, AssetNotFoundError):
        return HTTPException(
            status_code=404,
            detail={
                "error": "Asset Not Found",
                "message": str(e),
                "asset_id": request.asset_id
            }
        )
    if isinstance(e, WalletNotFoundError):
        return HTTPException(
            status_code=404,
            detail={
                "error": "Wallet Not Found",
                "message": str(e),
                "user_id": request.user_id
            }
        )
    if isinstance(e, InsufficientFundsError):
        return HTTPException(
            status_code=400,
            detail={
                "error": "Insufficient Funds",
                "message": str(e),
                "user_id": request.user_id,
                "requested_quantity": str(request.quantity)
            }
        )
    if isinstance(e, InsufficientHoldingError):
        return HTTPException(
            status_code=400,
            detail={
                "error": "Insufficient Holding",
                "message": str(e),
                "user_id": request.user_id,
                "asset_id": request.asset_id,
                "requested_quantity": str(request.quantity)
            }
        )
    if isinstance(e, DuplicateRequestError):
        return HTTPException(
            status_code=409,
            detail={
                "error": "Idempotency Key Reused",
                "message": str(e)
            }
        )
    if isinstance(e, LedgerValidationError):
        return HTTPException(
            status_code=400,
            detail={
                "error": "Invalid Trade",
                "message": str(e)
            }
        )
    return HTTPException(
        status_code=503,
        detail={
            "error": "Storage Unavailable",
            "message": str(e)
        }
    )


@router.post("/buy", response_model=TradeReceipt, status_code=status.HTTP_201_CREATED)
async def buy(
    request: TradeRequest,
    idempotency_key: str = Header(..., alias="Idempotency-Key"),
    db: AsyncSession = Depends(get_db),
    market: MarketDataSource = Depends(get_market),
    locks: UserLockRegistry = Depends(get_locks)
):
    """
    Buy an asset with NeuraCoins

    Debits quantity * price plus the trading fee, adds the quantity to the
    user's holding and records the order.

    **Requires Idempotency-Key header to prevent duplicate orders**

    Example:
    ```
    POST /api/v1/trades/buy
    Headers: {"Idempotency-Key": "buy_user123_20260208_abc123"}
    Body: {
        "user_id": "user_123",
        "asset_id": "bitcoin",
        "quantity": "0.01",
        "price": "45000"
    }
    ```
    """
    service = TradeService(db, market, locks, trading_reward=settings.TRADING_REWARD)

    try:
        return await service.buy(
            user_id=request.user_id,
            asset_id=request.asset_id,
            quantity=request.quantity,
            unit_price=request.price,
            idempotency_key=idempotency_key
        )

    except (LedgerValidationError, WalletNotFoundError, PersistenceError) as e:
        raise _trade_error(e, request)
    except Exception as e:
        await db.rollback()
        logger.error(f"Buy failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={
                "error": "Trade Failed",
                "message": f"Trade failed: {str(e)}",
                "type": type(e).__name__
            }
        )


@router.post("/sell", response_model=TradeReceipt, status_code=status.HTTP_201_CREATED)
async def sell(
    request: TradeRequest,
    idempotency_key: str = Header(..., alias="Idempotency-Key"),
    db: AsyncSession = Depends(get_db),
    market: MarketDataSource = Depends(get_market),
    locks: UserLockRegistry = Depends(get_locks)
):
    """
    Sell an asset for NeuraCoins

    Credits quantity * price minus the trading fee. Selling the whole
    holding closes it.

    **Requires Idempotency-Key header to prevent duplicate orders**

    Example:
    ```
    POST /api/v1/trades/sell
    Headers: {"Idempotency-Key": "sell_user123_20260208_abc123"}
    Body: {
        "user_id": "user_123",
        "asset_id": "bitcoin",
        "quantity": "0.01",
        "price": "50000"
    }
    ```
    """
    service = TradeService(db, market, locks)

    try:
        return await service.sell(
            user_id=request.user_id,
            asset_id=request.asset_id,
            quantity=request.quantity,
            unit_price=request.price,
            idempotency_key=idempotency_key
        )

    except (LedgerValidationError, WalletNotFoundError, PersistenceError) as e:
        raise _trade_error(e, request)
    except Exception as e:
        await db.rollback()
        logger.error(f"Sell failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={
                "error": "Trade Failed",
                "message": f"Trade failed: {str(e)}",
                "type": type(e).__name__
            }
        )
