"""In-memory ledger domain: wallet, portfolio and event log"""
from neuracoin.ledger.errors import (
    LedgerError,
    LedgerValidationError,
    InsufficientFundsError,
    InsufficientHoldingError,
    AssetNotFoundError,
    InvalidAmountError,
    WalletNotFoundError,
    PersistenceError,
    DuplicateRequestError,
)
from neuracoin.ledger.events import EventLog
from neuracoin.ledger.portfolio import PortfolioLedger, SellOutcome
from neuracoin.ledger.state import LedgerState, user_key
from neuracoin.ledger.types import (
    EventStatus,
    EventType,
    Holding,
    LedgerEvent,
    MarketAsset,
    OrderView,
    PortfolioSummary,
    RewardKind,
    RewardReceipt,
    TradeReceipt,
    TransactionView,
    Wallet,
)
from neuracoin.ledger.wallet import WalletLedger

__all__ = [
    "LedgerError",
    "LedgerValidationError",
    "InsufficientFundsError",
    "InsufficientHoldingError",
    "AssetNotFoundError",
    "InvalidAmountError",
    "WalletNotFoundError",
    "PersistenceError",
    "DuplicateRequestError",
    "EventLog",
    "PortfolioLedger",
    "SellOutcome",
    "LedgerState",
    "user_key",
    "EventStatus",
    "EventType",
    "Holding",
    "LedgerEvent",
    "MarketAsset",
    "OrderView",
    "PortfolioSummary",
    "RewardKind",
    "RewardReceipt",
    "TradeReceipt",
    "TransactionView",
    "Wallet",
    "WalletLedger",
]
