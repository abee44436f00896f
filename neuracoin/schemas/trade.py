"""Trade Schemas - Request Models"""
from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional


def _check_precision(v: Decimal, name: str) -> Decimal:
    if v <= 0:
        raise ValueError(f'{name} must be greater than 0')
    if v.as_tuple().exponent < -8:
        raise ValueError(f'{name} cannot have more than 8 decimal places')
    return v


class TradeRequest(BaseModel):
    """Request schema for a buy or sell"""
    user_id: str = Field(..., min_length=1, description="User identifier")
    asset_id: str = Field(..., min_length=1, description="Market asset id (e.g., bitcoin)")
    quantity: Decimal = Field(..., gt=0, description="Units of the asset to trade")
    price: Optional[Decimal] = Field(None, gt=0, description="Unit price; current market price when omitted")

    @field_validator('quantity')
    @classmethod
    def validate_quantity(cls, v):
        return _check_precision(v, 'Quantity')

    @field_validator('price')
    @classmethod
    def validate_price(cls, v):
        if v is None:
            return v
        return _check_precision(v, 'Price')
