import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from neuracoin.config import settings
from neuracoin.ledger.errors import AssetNotFoundError, InvalidAmountError
from neuracoin.ledger.events import buy_event, sell_event
from neuracoin.ledger.types import ZERO, MarketAsset, RewardKind, TradeReceipt
from neuracoin.services.locks import UserLockRegistry
from neuracoin.services.market_data import MarketDataSource
from neuracoin.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

BUY_OPERATION = "trades/buy"
SELL_OPERATION = "trades/sell"


class TradeService(WalletService):
    """
    Trade Orchestrator - runs a buy or sell across wallet, portfolio and event log

    A trade moves through validate -> apply -> persist -> report. Validation
    failures raise before any ledger is touched; a failure after that rolls
    the whole unit of work back, so either every ledger reflects the trade
    or none does.
    """

    def __init__(
        self,
        db: AsyncSession,
        market: MarketDataSource,
        locks: Optional[UserLockRegistry] = None,
        fee_rate: Optional[Decimal] = None,
        trading_reward: Decimal = ZERO,
    ):
        super().__init__(db, locks)
        self.market = market
        self.fee_rate = settings.FEE_RATE if fee_rate is None else fee_rate
        self.trading_reward = trading_reward

    def calculate_fee(self, quantity: Decimal, unit_price: Decimal) -> Decimal:
        return quantity * unit_price * self.fee_rate

    async def _resolve(self, asset_id: str, quantity: Decimal, unit_price: Optional[Decimal]):
        if quantity <= 0:
            raise InvalidAmountError(f"Quantity must be positive, got {quantity}")
        if unit_price is not None and unit_price <= 0:
            raise InvalidAmountError(f"Price must be positive, got {unit_price}")

        asset: Optional[MarketAsset] = await self.market.get_asset(asset_id)
        if asset is None:
            raise AssetNotFoundError(f"Asset {asset_id} not found")

        return asset, unit_price if unit_price is not None else asset.current_price

    async def buy(
        self,
        user_id: str,
        asset_id: str,
        quantity: Decimal,
        unit_price: Optional[Decimal] = None,
        idempotency_key: Optional[str] = None,
    ) -> TradeReceipt:
        """
        Buy quantity of asset_id at unit_price (market price when omitted).

        Costs quantity * unit_price plus the fee. Raises InsufficientFundsError
        when the balance does not cover the total.
        """
        async with self.unit_of_work(user_id):
            if idempotency_key:
                cached = await self._check_idempotency(idempotency_key, user_id, BUY_OPERATION, "POST")
                if cached:
                    logger.info(f"Returning cached buy for idempotency key {idempotency_key}")
                    return TradeReceipt.model_validate(cached["body"])

            asset, unit_price = await self._resolve(asset_id, quantity, unit_price)
            fee = self.calculate_fee(quantity, unit_price)
            total = quantity * unit_price + fee

            state = await self.load_state(user_id, for_update=True)

            # Debit raises before anything is touched when the balance is short
            state.wallet.debit(total)
            holding = state.portfolio.apply_buy(asset.id, quantity, unit_price, asset=asset)
            event = state.events.append(
                buy_event(user_id, asset, quantity, unit_price, fee, settings.CURRENCY_NAME)
            )
            reward = self._credit_reward(state, RewardKind.TRADING, self.trading_reward)

            receipt = TradeReceipt(
                event=event,
                reward_event=reward,
                wallet=state.wallet.wallet,
                holding=holding,
            )

            await self.save_state(state)
            if idempotency_key:
                await self._save_idempotency_log(
                    idempotency_key=idempotency_key,
                    user_id=user_id,
                    request_path=BUY_OPERATION,
                    request_method="POST",
                    response_status=201,
                    response_body=receipt.model_dump(mode="json"),
                )
            await self.commit()

        logger.info(
            f"Buy completed: {user_id} bought {quantity} {asset.symbol.upper()} "
            f"at {unit_price} for {total} {settings.CURRENCY_NAME}"
        )
        return receipt

    async def sell(
        self,
        user_id: str,
        asset_id: str,
        quantity: Decimal,
        unit_price: Optional[Decimal] = None,
        idempotency_key: Optional[str] = None,
    ) -> TradeReceipt:
        """
        Sell quantity of asset_id at unit_price (market price when omitted).

        Credits quantity * unit_price minus the fee and records the realized
        profit or loss against the average buy price. Raises
        InsufficientHoldingError when the holding does not cover quantity.
        """
        async with self.unit_of_work(user_id):
            if idempotency_key:
                cached = await self._check_idempotency(idempotency_key, user_id, SELL_OPERATION, "POST")
                if cached:
                    logger.info(f"Returning cached sell for idempotency key {idempotency_key}")
                    return TradeReceipt.model_validate(cached["body"])

            asset, unit_price = await self._resolve(asset_id, quantity, unit_price)
            fee = self.calculate_fee(quantity, unit_price)
            proceeds = quantity * unit_price - fee

            state = await self.load_state(user_id, for_update=True)

            outcome = state.portfolio.apply_sell(asset.id, quantity, unit_price)
            if proceeds > 0:
                state.wallet.credit(proceeds, reason=SELL_OPERATION)
            event = state.events.append(
                sell_event(
                    user_id, asset, quantity, unit_price, fee,
                    outcome.realized_pnl, settings.CURRENCY_NAME,
                )
            )

            receipt = TradeReceipt(
                event=event,
                wallet=state.wallet.wallet,
                holding=outcome.holding,
            )

            await self.save_state(state)
            if idempotency_key:
                await self._save_idempotency_log(
                    idempotency_key=idempotency_key,
                    user_id=user_id,
                    request_path=SELL_OPERATION,
                    request_method="POST",
                    response_status=201,
                    response_body=receipt.model_dump(mode="json"),
                )
            await self.commit()

        logger.info(
            f"Sell completed: {user_id} sold {quantity} {asset.symbol.upper()} "
            f"at {unit_price} for {proceeds} {settings.CURRENCY_NAME} "
            f"(realized {outcome.realized_pnl})"
        )
        return receipt
