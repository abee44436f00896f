"""Wallet Ledger - owns the spendable balance and its lifetime flow"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from neuracoin.ledger.errors import InsufficientFundsError, InvalidAmountError
from neuracoin.ledger.types import Wallet, utcnow

logger = logging.getLogger(__name__)


class WalletLedger:
    """Wallet Ledger

    Single source of truth for one user's balance. Every mutation either
    applies completely or raises before touching the wallet.
    """

    def __init__(self, wallet: Wallet):
        self.wallet = wallet

    @classmethod
    def open(cls, user_id: str, now: Optional[datetime] = None) -> "WalletLedger":
        now = now or utcnow()
        wallet = Wallet(
            id=f"wallet_{user_id}",
            user_id=user_id,
            created_at=now,
            last_updated=now,
        )
        return cls(wallet)

    @property
    def user_id(self) -> str:
        return self.wallet.user_id

    @property
    def balance(self) -> Decimal:
        return self.wallet.balance

    def get_balance(self) -> Decimal:
        return self.wallet.balance

    def can_afford(self, amount: Decimal) -> bool:
        return self.wallet.balance >= amount

    def credit(self, amount: Decimal, reason: Optional[str] = None, now: Optional[datetime] = None) -> Decimal:
        """Add amount to the balance and to total_earned, returns the new balance"""
        if amount <= 0:
            raise InvalidAmountError(f"Credit amount must be positive, got {amount}")

        self.wallet.balance += amount
        self.wallet.total_earned += amount
        self.wallet.last_updated = now or utcnow()

        logger.debug(f"Credited {amount} to {self.user_id} ({reason or 'unspecified'})")
        return self.wallet.balance

    def debit(self, amount: Decimal, now: Optional[datetime] = None) -> Decimal:
        """Take amount from the balance, returns the new balance"""
        if amount <= 0:
            raise InvalidAmountError(f"Debit amount must be positive, got {amount}")
        if not self.can_afford(amount):
            raise InsufficientFundsError(
                f"Insufficient balance. Available: {self.wallet.balance}, Required: {amount}"
            )

        self.wallet.balance -= amount
        self.wallet.total_spent += amount
        self.wallet.last_updated = now or utcnow()
        return self.wallet.balance
