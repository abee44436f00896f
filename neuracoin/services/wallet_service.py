import json
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncIterator, List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from neuracoin.config import settings
from neuracoin.ledger.errors import (
    DuplicateRequestError,
    PersistenceError,
    WalletNotFoundError,
)
from neuracoin.ledger.events import reward_event
from neuracoin.ledger.state import (
    EVENTS,
    LAST_DAILY_LOGIN,
    PORTFOLIO,
    USER_ENTITIES,
    WALLET,
    LedgerState,
    user_key,
)
from neuracoin.ledger.types import (
    LedgerEvent,
    OrderView,
    RewardKind,
    RewardReceipt,
    TransactionView,
    Wallet,
)
from neuracoin.models import IdempotencyLog
from neuracoin.services.locks import UserLockRegistry
from neuracoin.storage import KeyValueStore

logger = logging.getLogger(__name__)

REWARD_OPERATION = "wallets/rewards"

DEFAULT_REWARDS = {
    RewardKind.WELCOME_BONUS: settings.WELCOME_BONUS,
    RewardKind.DAILY_LOGIN: settings.DAILY_LOGIN_BONUS,
    RewardKind.TRADING: settings.TRADING_REWARD,
    RewardKind.REFERRAL: settings.REFERRAL_BONUS,
}


class WalletService:
    """Wallet Service - loads, mutates and persists one user's ledger state

    Every mutation runs as one unit of work: under the user's lock, the wallet,
    portfolio and event log documents are written in a single database
    transaction, or not at all.
    """

    def __init__(self, db: AsyncSession, locks: Optional[UserLockRegistry] = None):
        self.db = db
        self.store = KeyValueStore(db)
        self.locks = locks or UserLockRegistry()

    # --- Unit of work ---

    @asynccontextmanager
    async def unit_of_work(self, user_id: str) -> AsyncIterator[None]:
        """Serialize on the user's lock and roll back anything left uncommitted on failure"""
        async with self.locks.hold(user_id):
            try:
                yield
            except BaseException:
                await self.db.rollback()
                raise

    async def commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Ledger commit failed: {e}", exc_info=True)
            raise PersistenceError("Ledger changes could not be saved") from e

    async def load_optional_state(self, user_id: str, for_update: bool = False) -> Optional[LedgerState]:
        wallet_doc = await self.store.get(user_key(WALLET, user_id), for_update=for_update)
        if wallet_doc is None:
            return None

        portfolio_doc = await self.store.get(user_key(PORTFOLIO, user_id), for_update=for_update)
        events_doc = await self.store.get(user_key(EVENTS, user_id), for_update=for_update)
        try:
            return LedgerState.from_documents(user_id, wallet_doc, portfolio_doc, events_doc)
        except ValidationError as e:
            logger.error(f"Stored ledger documents for {user_id} are malformed: {e}")
            raise PersistenceError(f"Ledger state for {user_id} could not be read") from e

    async def load_state(self, user_id: str, for_update: bool = False) -> LedgerState:
        state = await self.load_optional_state(user_id, for_update=for_update)
        if state is None:
            raise WalletNotFoundError(f"Wallet not found for user {user_id}")
        return state

    async def save_state(self, state: LedgerState):
        for key, document in state.to_documents().items():
            await self.store.set(key, document)

    # --- Idempotency ---

    async def _check_idempotency(
        self,
        idempotency_key: str,
        user_id: str,
        request_path: str,
        request_method: str,
    ) -> Optional[dict]:
        """
        Check if request with this idempotency key was already processed
        Returns cached response if found, None otherwise
        """
        stmt = select(IdempotencyLog).where(IdempotencyLog.idempotency_key == idempotency_key)
        result = await self.db.execute(stmt)
        log = result.scalar_one_or_none()

        if log is None:
            return None

        if _as_utc(log.expires_at) <= datetime.now(timezone.utc):
            await self.db.delete(log)
            await self.db.flush()
            return None

        if log.user_id != user_id:
            raise DuplicateRequestError(
                f"Idempotency key '{idempotency_key}' was already used by another user"
            )

        if log.request_path != request_path or log.request_method != request_method:
            raise DuplicateRequestError(
                f"Idempotency key '{idempotency_key}' was already used for {log.request_method} {log.request_path}"
            )

        return {
            "status": log.response_status,
            "body": json.loads(log.response_body) if log.response_body else None
        }

    async def _save_idempotency_log(
        self,
        idempotency_key: str,
        user_id: str,
        request_path: str,
        request_method: str,
        response_status: int,
        response_body: dict
    ):
        """Save idempotency log for future duplicate checks"""
        expires_at = datetime.now(timezone.utc) + timedelta(hours=settings.IDEMPOTENCY_TTL_HOURS)

        log = IdempotencyLog(
            idempotency_key=idempotency_key,
            user_id=user_id,
            request_path=request_path,
            request_method=request_method,
            response_status=response_status,
            response_body=json.dumps(response_body),
            expires_at=expires_at
        )

        self.db.add(log)
        await self.db.flush()

    # --- Rewards ---

    def _credit_reward(self, state: LedgerState, kind: RewardKind, amount: Decimal) -> Optional[LedgerEvent]:
        """Credit the wallet and append the reward event; zero amounts are skipped"""
        if amount <= 0:
            return None
        state.wallet.credit(amount, reason=kind.value)
        return state.events.append(reward_event(state.user_id, kind, amount, settings.CURRENCY_NAME))

    async def initialize(self, user_id: str, today: Optional[date] = None) -> LedgerState:
        """
        Open the wallet on first use, or hand out the daily login bonus.

        A new wallet starts with the welcome bonus. An existing one gets the
        daily bonus once per calendar day.
        """
        today = today or datetime.now(timezone.utc).date()
        login_key = user_key(LAST_DAILY_LOGIN, user_id)

        async with self.unit_of_work(user_id):
            state = await self.load_optional_state(user_id, for_update=True)

            if state is None:
                state = LedgerState.new(user_id)
                self._credit_reward(state, RewardKind.WELCOME_BONUS, settings.WELCOME_BONUS)
                logger.info(f"Opened wallet for {user_id} with {state.wallet.balance} {settings.CURRENCY_NAME}")
            else:
                last_login = await self.store.get(login_key)
                if last_login == today.isoformat():
                    return state
                if self._credit_reward(state, RewardKind.DAILY_LOGIN, settings.DAILY_LOGIN_BONUS):
                    logger.info(f"Daily login bonus credited to {user_id}")

            await self.save_state(state)
            await self.store.set(login_key, today.isoformat())
            await self.commit()

        return state

    async def add_reward(
        self,
        user_id: str,
        kind: RewardKind,
        amount: Optional[Decimal] = None,
        idempotency_key: Optional[str] = None,
    ) -> RewardReceipt:
        """Credit a reward to an existing wallet"""
        amount = DEFAULT_REWARDS[kind] if amount is None else amount

        async with self.unit_of_work(user_id):
            if idempotency_key:
                cached = await self._check_idempotency(idempotency_key, user_id, REWARD_OPERATION, "POST")
                if cached:
                    return RewardReceipt.model_validate(cached["body"])

            state = await self.load_state(user_id, for_update=True)
            state.wallet.credit(amount, reason=kind.value)
            event = state.events.append(reward_event(user_id, kind, amount, settings.CURRENCY_NAME))
            receipt = RewardReceipt(event=event, wallet=state.wallet.wallet)

            await self.save_state(state)
            if idempotency_key:
                await self._save_idempotency_log(
                    idempotency_key=idempotency_key,
                    user_id=user_id,
                    request_path=REWARD_OPERATION,
                    request_method="POST",
                    response_status=201,
                    response_body=receipt.model_dump(mode="json"),
                )
            await self.commit()

        logger.info(f"Reward added: {amount} {settings.CURRENCY_NAME} for {kind.value} to {user_id}")
        return receipt

    # --- Reads ---

    async def get_wallet(self, user_id: str) -> Wallet:
        state = await self.load_state(user_id)
        return state.wallet.wallet

    async def get_transactions(self, user_id: str, limit: int = 50, offset: int = 0) -> List[TransactionView]:
        """Transaction history, newest first"""
        state = await self.load_state(user_id)
        return state.events.transactions()[offset:offset + limit]

    async def get_orders(self, user_id: str, limit: int = 50, offset: int = 0) -> List[OrderView]:
        """Buy and sell orders, newest first"""
        state = await self.load_state(user_id)
        return state.events.orders()[offset:offset + limit]

    async def clear_user_data(self, user_id: str) -> int:
        """Remove every document stored for the user, returns how many existed"""
        async with self.unit_of_work(user_id):
            removed = 0
            for entity in USER_ENTITIES:
                key = user_key(entity, user_id)
                if await self.store.get(key) is not None:
                    await self.store.remove(key)
                    removed += 1
            await self.commit()

        logger.info(f"Cleared {removed} documents for {user_id}")
        return removed


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
