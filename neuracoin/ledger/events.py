"""Event Log - the single append-only history behind transactions and orders"""
from decimal import Decimal
from typing import Iterable, Iterator, List

from neuracoin.ledger.types import (
    ZERO,
    EventType,
    LedgerEvent,
    MarketAsset,
    OrderView,
    RewardKind,
    TransactionView,
    generate_id,
    utcnow,
)


class EventLog:
    """Event Log

    Events are kept newest first and never modified or removed once appended.
    Transactions and orders are both views over this one sequence, so they
    cannot drift apart.
    """

    def __init__(self, events: Iterable[LedgerEvent] = ()):
        self._events: List[LedgerEvent] = list(events)

    def __iter__(self) -> Iterator[LedgerEvent]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> List[LedgerEvent]:
        return list(self._events)

    def append(self, event: LedgerEvent) -> LedgerEvent:
        self._events.insert(0, event)
        return event

    def transactions(self) -> List[TransactionView]:
        return [TransactionView.from_event(e) for e in self._events]

    def orders(self) -> List[OrderView]:
        return [OrderView.from_event(e) for e in self._events if e.is_trade]


def buy_event(
    user_id: str,
    asset: MarketAsset,
    quantity: Decimal,
    unit_price: Decimal,
    fee: Decimal,
    currency: str,
) -> LedgerEvent:
    notional = quantity * unit_price
    total = notional + fee
    symbol = asset.symbol.upper()
    return LedgerEvent(
        id=generate_id("tx"),
        user_id=user_id,
        type=EventType.BUY,
        asset_id=asset.id,
        asset_symbol=symbol,
        asset_name=asset.name,
        asset_image=asset.image,
        amount=quantity,
        price=unit_price,
        total_value=notional,
        fee=fee,
        total_cost=total,
        description=f"Bought {quantity:.8f} {symbol} for {total:.2f} {currency}",
        timestamp=utcnow(),
    )


def sell_event(
    user_id: str,
    asset: MarketAsset,
    quantity: Decimal,
    unit_price: Decimal,
    fee: Decimal,
    realized_pnl: Decimal,
    currency: str,
) -> LedgerEvent:
    notional = quantity * unit_price
    proceeds = notional - fee
    symbol = asset.symbol.upper()
    return LedgerEvent(
        id=generate_id("tx"),
        user_id=user_id,
        type=EventType.SELL,
        asset_id=asset.id,
        asset_symbol=symbol,
        asset_name=asset.name,
        asset_image=asset.image,
        amount=quantity,
        price=unit_price,
        total_value=notional,
        fee=fee,
        total_cost=proceeds,
        realized_pnl=realized_pnl,
        description=f"Sold {quantity:.8f} {symbol} for {proceeds:.2f} {currency}",
        timestamp=utcnow(),
    )


REWARD_DESCRIPTIONS = {
    RewardKind.WELCOME_BONUS: "Welcome bonus: {amount} {currency} for joining",
    RewardKind.DAILY_LOGIN: "Daily login bonus: {amount} {currency}",
    RewardKind.TRADING: "Trading reward: {amount} {currency} for completing a trade",
    RewardKind.REFERRAL: "Referral bonus: {amount} {currency}",
}


def reward_event(user_id: str, kind: RewardKind, amount: Decimal, currency: str) -> LedgerEvent:
    description = REWARD_DESCRIPTIONS[kind].format(amount=amount, currency=currency)
    return LedgerEvent(
        id=generate_id("reward"),
        user_id=user_id,
        type=EventType.REWARD,
        amount=ZERO,
        price=ZERO,
        total_cost=amount,
        reward_kind=kind,
        description=description,
        timestamp=utcnow(),
    )
