from fastapi import APIRouter, Depends, HTTPException, Header, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from neuracoin.api.deps import get_locks
from neuracoin.config import settings
from neuracoin.database import get_db
from neuracoin.ledger.errors import (
    DuplicateRequestError,
    LedgerValidationError,
    PersistenceError,
    WalletNotFoundError,
)
from neuracoin.ledger.types import OrderView, RewardReceipt, TransactionView
from neuracoin.schemas.wallet import (
    ClearDataResponse,
    RewardRequest,
    WalletBalanceResponse,
    WalletResponse,
)
from neuracoin.services.locks import UserLockRegistry
from neuracoin.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallets", tags=["Wallets"])

RECENT_TRANSACTIONS = 10


def _not_found(e: WalletNotFoundError, user_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "error": "Wallet Not Found",
            "message": str(e),
            "user_id": user_id
        }
    )


def _unavailable(e: PersistenceError) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={
            "error": "Storage Unavailable",
            "message": str(e)
        }
    )


@router.post("/{user_id}/initialize", response_model=WalletResponse)
async def initialize_wallet(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    locks: UserLockRegistry = Depends(get_locks)
):
    """
    Open the user's wallet or claim the daily login bonus

    The first call credits the welcome bonus. Later calls credit the daily
    login bonus once per calendar day and are otherwise no-ops.

    Example:
    ```
    POST /api/v1/wallets/user_123/initialize
    ```
    """
    service = WalletService(db, locks)

    try:
        state = await service.initialize(user_id)
        return WalletResponse(
            wallet=state.wallet.wallet,
            recent_transactions=state.events.transactions()[:RECENT_TRANSACTIONS]
        )

    except PersistenceError as e:
        raise _unavailable(e)
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid User", "message": str(e), "user_id": user_id}
        )
    except Exception as e:
        await db.rollback()
        logger.error(f"Initialize failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={
                "error": "Initialization Failed",
                "message": f"Initialization failed: {str(e)}",
                "type": type(e).__name__
            }
        )


@router.get("/{user_id}", response_model=WalletResponse)
async def get_wallet(
    user_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Wallet with its most recent transactions"""
    service = WalletService(db)

    try:
        wallet = await service.get_wallet(user_id)
        transactions = await service.get_transactions(user_id, limit=RECENT_TRANSACTIONS)
        return WalletResponse(wallet=wallet, recent_transactions=transactions)

    except WalletNotFoundError as e:
        raise _not_found(e, user_id)
    except PersistenceError as e:
        raise _unavailable(e)


@router.get("/{user_id}/balance", response_model=WalletBalanceResponse)
async def get_wallet_balance(
    user_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Get wallet balance for a user

    Example:
    ```
    GET /api/v1/wallets/user_123/balance
    ```
    """
    service = WalletService(db)

    try:
        wallet = await service.get_wallet(user_id)

        return WalletBalanceResponse(
            wallet_id=wallet.id,
            user_id=wallet.user_id,
            balance=wallet.balance,
            currency=settings.CURRENCY_NAME,
            last_updated=wallet.last_updated
        )

    except WalletNotFoundError as e:
        raise _not_found(e, user_id)
    except PersistenceError as e:
        raise _unavailable(e)


@router.post("/{user_id}/rewards", response_model=RewardReceipt, status_code=status.HTTP_201_CREATED)
async def add_reward(
    user_id: str,
    request: RewardRequest,
    idempotency_key: str = Header(..., alias="Idempotency-Key"),
    db: AsyncSession = Depends(get_db),
    locks: UserLockRegistry = Depends(get_locks)
):
    """
    Credit a reward to the user's wallet

    The amount defaults to the configured value for the reward kind.

    **Requires Idempotency-Key header to prevent duplicate rewards**

    Example:
    ```
    POST /api/v1/wallets/user_123/rewards
    Headers: {"Idempotency-Key": "reward_user_123_20260208_abc123"}
    Body: {"kind": "referral"}
    ```
    """
    service = WalletService(db, locks)

    try:
        return await service.add_reward(
            user_id=user_id,
            kind=request.kind,
            amount=request.amount,
            idempotency_key=idempotency_key
        )

    except WalletNotFoundError as e:
        raise _not_found(e, user_id)
    except DuplicateRequestError as e:
        raise HTTPException(
            status_code=409,
            detail={"error": "Idempotency Key Reused", "message": str(e)}
        )
    except LedgerValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Invalid Reward",
                "message": str(e),
                "user_id": user_id,
                "kind": request.kind.value
            }
        )
    except PersistenceError as e:
        raise _unavailable(e)
    except Exception as e:
        await db.rollback()
        logger.error(f"Reward failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={
                "error": "Reward Failed",
                "message": f"Reward failed: {str(e)}",
                "type": type(e).__name__
            }
        )


@router.get("/{user_id}/transactions", response_model=List[TransactionView])
async def get_transaction_history(
    user_id: str,
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db)
):
    """
    Get transaction history for a user, newest first

    Example:
    ```
    GET /api/v1/wallets/user_123/transactions?limit=20
    ```
    """
    service = WalletService(db)

    try:
        return await service.get_transactions(
            user_id=user_id,
            limit=min(limit, 100),
            offset=max(offset, 0)
        )

    except WalletNotFoundError as e:
        raise _not_found(e, user_id)
    except PersistenceError as e:
        raise _unavailable(e)


@router.get("/{user_id}/orders", response_model=List[OrderView])
async def get_order_history(
    user_id: str,
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db)
):
    """Buy and sell orders for a user, newest first"""
    service = WalletService(db)

    try:
        return await service.get_orders(
            user_id=user_id,
            limit=min(limit, 100),
            offset=max(offset, 0)
        )

    except WalletNotFoundError as e:
        raise _not_found(e, user_id)
    except PersistenceError as e:
        raise _unavailable(e)


@router.delete("/{user_id}", response_model=ClearDataResponse)
async def clear_user_data(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    locks: UserLockRegistry = Depends(get_locks)
):
    """Remove the user's wallet, portfolio, history and login marker"""
    service = WalletService(db, locks)

    try:
        removed = await service.clear_user_data(user_id)
        return ClearDataResponse(user_id=user_id, removed_documents=removed)

    except PersistenceError as e:
        raise _unavailable(e)
