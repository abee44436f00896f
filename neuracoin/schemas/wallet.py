"""Wallet Schemas - Request/Response Models"""
from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from datetime import datetime
from typing import Optional, List

from neuracoin.ledger.types import RewardKind, TransactionView, Wallet


class RewardRequest(BaseModel):
    """Request schema for reward credits"""
    kind: RewardKind = Field(..., description="Reward kind (welcome_bonus, daily_login, trading, referral)")
    amount: Optional[Decimal] = Field(None, gt=0, description="Override the configured amount for this kind")

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        if v is None:
            return v
        if v <= 0:
            raise ValueError('Amount must be greater than 0')
        # Ensure max 2 decimal places
        if v.as_tuple().exponent < -2:
            raise ValueError('Amount cannot have more than 2 decimal places')
        return v


class WalletBalanceResponse(BaseModel):
    """Response schema for wallet balance"""
    wallet_id: str
    user_id: str
    balance: Decimal
    currency: str
    last_updated: datetime

    class Config:
        from_attributes = True


class WalletResponse(BaseModel):
    """Detailed wallet response with recent transactions"""
    wallet: Wallet
    recent_transactions: List[TransactionView]


class ClearDataResponse(BaseModel):
    user_id: str
    removed_documents: int
