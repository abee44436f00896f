"""Ledger State - one user's wallet, portfolio and event log as stored documents"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from neuracoin.ledger.events import EventLog
from neuracoin.ledger.portfolio import PortfolioLedger
from neuracoin.ledger.types import Holding, LedgerEvent, Wallet
from neuracoin.ledger.wallet import WalletLedger

WALLET = "wallet"
PORTFOLIO = "portfolio"
EVENTS = "events"
LAST_DAILY_LOGIN = "last_daily_login"

USER_ENTITIES = (WALLET, PORTFOLIO, EVENTS, LAST_DAILY_LOGIN)


def user_key(entity: str, user_id: str) -> str:
    """Storage key for one of a user's documents, <entity>_<user_id>"""
    if not user_id or not user_id.strip():
        raise ValueError("user_id cannot be empty")
    return f"{entity}_{user_id}"


@dataclass
class LedgerState:
    wallet: WalletLedger
    portfolio: PortfolioLedger
    events: EventLog

    @property
    def user_id(self) -> str:
        return self.wallet.user_id

    @classmethod
    def new(cls, user_id: str) -> "LedgerState":
        return cls(
            wallet=WalletLedger.open(user_id),
            portfolio=PortfolioLedger(user_id),
            events=EventLog(),
        )

    def to_documents(self) -> Dict[str, Any]:
        """Map of storage key to JSON-ready document"""
        user_id = self.user_id
        return {
            user_key(WALLET, user_id): self.wallet.wallet.model_dump(mode="json"),
            user_key(PORTFOLIO, user_id): [h.model_dump(mode="json") for h in self.portfolio.holdings],
            user_key(EVENTS, user_id): [e.model_dump(mode="json") for e in self.events],
        }

    @classmethod
    def from_documents(
        cls,
        user_id: str,
        wallet_doc: Dict[str, Any],
        portfolio_doc: Optional[list] = None,
        events_doc: Optional[list] = None,
    ) -> "LedgerState":
        wallet = Wallet.model_validate(wallet_doc)
        holdings = [Holding.model_validate(h) for h in portfolio_doc or []]
        events = [LedgerEvent.model_validate(e) for e in events_doc or []]
        return cls(
            wallet=WalletLedger(wallet),
            portfolio=PortfolioLedger(user_id, holdings),
            events=EventLog(events),
        )
