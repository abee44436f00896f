"""Ledger Types - wallets, holdings, ledger events and their read views"""
import enum
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    """Epoch milliseconds plus a random suffix, unique enough for one user's ledger"""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class EventType(str, enum.Enum):
    """Ledger Event Types"""
    BUY = "buy"
    SELL = "sell"
    REWARD = "reward"


class EventStatus(str, enum.Enum):
    """Ledger Event Status"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class RewardKind(str, enum.Enum):
    """Reasons a wallet gets credited outside of trading"""
    WELCOME_BONUS = "welcome_bonus"   # Wallet opened
    DAILY_LOGIN = "daily_login"       # First initialization of a calendar day
    TRADING = "trading"               # Completed buy
    REFERRAL = "referral"             # Invited another user


class Wallet(BaseModel):
    """Wallet

    The user's simulated cash. Balance never goes negative through a ledger
    mutation; total_earned and total_spent only grow.
    """
    id: str
    user_id: str
    balance: Decimal = ZERO
    total_earned: Decimal = ZERO
    total_spent: Decimal = ZERO
    created_at: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)


class MarketAsset(BaseModel):
    """A tradable asset as reported by the market data source"""
    id: str
    symbol: str
    name: str
    image: Optional[str] = None
    current_price: Decimal
    price_change_24h_percent: Optional[Decimal] = None
    market_cap: Optional[Decimal] = None
    total_volume: Optional[Decimal] = None


class Holding(BaseModel):
    """Holding

    One row per asset id. total_invested always equals
    amount * average_buy_price; valuation fields are derived on read.
    """
    id: str
    asset_id: str
    asset_symbol: str
    asset_name: str
    asset_image: Optional[str] = None
    amount: Decimal
    average_buy_price: Decimal
    total_invested: Decimal
    current_price: Decimal
    last_updated: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def current_value(self) -> Decimal:
        return self.amount * self.current_price

    @computed_field
    @property
    def profit_loss(self) -> Decimal:
        return self.current_value - self.total_invested

    @computed_field
    @property
    def profit_loss_percent(self) -> Decimal:
        if self.total_invested <= 0:
            return ZERO
        return self.profit_loss / self.total_invested * HUNDRED


class LedgerEvent(BaseModel):
    """Ledger Event

    Single append-only record of everything that moved the ledgers.
    total_cost is the effect on the balance as a positive number: spent on a
    buy, received on a sell or reward.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    type: EventType
    status: EventStatus = EventStatus.COMPLETED

    asset_id: Optional[str] = None
    asset_symbol: Optional[str] = None
    asset_name: Optional[str] = None
    asset_image: Optional[str] = None

    amount: Decimal = ZERO
    price: Decimal = ZERO
    total_value: Decimal = ZERO
    fee: Decimal = ZERO
    total_cost: Decimal = ZERO
    realized_pnl: Optional[Decimal] = None

    reward_kind: Optional[RewardKind] = None
    description: str = ""
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def is_trade(self) -> bool:
        return self.type in (EventType.BUY, EventType.SELL)


class TransactionView(BaseModel):
    """Wallet-facing view of a ledger event"""
    id: str
    type: EventType
    asset_id: Optional[str] = None
    asset_symbol: Optional[str] = None
    asset_name: Optional[str] = None
    asset_image: Optional[str] = None
    amount: Decimal
    price: Decimal
    total_cost: Decimal
    reward_kind: Optional[RewardKind] = None
    status: EventStatus
    description: str
    timestamp: datetime

    @classmethod
    def from_event(cls, event: LedgerEvent) -> "TransactionView":
        return cls(
            id=event.id,
            type=event.type,
            asset_id=event.asset_id,
            asset_symbol=event.asset_symbol,
            asset_name=event.asset_name,
            asset_image=event.asset_image,
            amount=event.amount,
            price=event.price,
            total_cost=event.total_cost,
            reward_kind=event.reward_kind,
            status=event.status,
            description=event.description,
            timestamp=event.timestamp,
        )


class OrderView(BaseModel):
    """Trading-facing view of a buy or sell event"""
    id: str
    type: EventType
    asset_id: str
    asset_symbol: str
    asset_name: str
    amount: Decimal
    price_per_unit: Decimal
    total_value: Decimal
    fee: Decimal
    realized_pnl: Optional[Decimal] = None
    status: EventStatus
    created_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_event(cls, event: LedgerEvent) -> "OrderView":
        return cls(
            id=event.id,
            type=event.type,
            asset_id=event.asset_id,
            asset_symbol=event.asset_symbol,
            asset_name=event.asset_name,
            amount=event.amount,
            price_per_unit=event.price,
            total_value=event.total_value,
            fee=event.fee,
            realized_pnl=event.realized_pnl,
            status=event.status,
            created_at=event.timestamp,
            completed_at=event.timestamp if event.status == EventStatus.COMPLETED else None,
        )


class PortfolioSummary(BaseModel):
    total_value: Decimal = ZERO
    total_invested: Decimal = ZERO
    total_profit_loss: Decimal = ZERO
    total_profit_loss_percent: Decimal = ZERO
    best_performer: Optional[Holding] = None
    worst_performer: Optional[Holding] = None
    total_holdings: int = 0


class TradeReceipt(BaseModel):
    """Outcome of a buy or sell, also what idempotent retries get back"""
    event: LedgerEvent
    reward_event: Optional[LedgerEvent] = None
    wallet: Wallet
    holding: Optional[Holding] = None


class RewardReceipt(BaseModel):
    """Outcome of a reward credit"""
    event: LedgerEvent
    wallet: Wallet
