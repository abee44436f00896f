"""Portfolio Ledger - holdings and their cost basis"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from neuracoin.ledger.errors import InsufficientHoldingError, InvalidAmountError
from neuracoin.ledger.types import (
    HUNDRED,
    ZERO,
    Holding,
    MarketAsset,
    PortfolioSummary,
    generate_id,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass
class SellOutcome:
    holding: Optional[Holding]
    realized_pnl: Decimal
    released_cost: Decimal


class PortfolioLedger:
    """Portfolio Ledger

    Authoritative record of what a user holds and at what cost basis.
    Holdings are keyed by asset id and kept in insertion order.
    """

    def __init__(self, user_id: str, holdings: Iterable[Holding] = ()):
        self.user_id = user_id
        self._holdings: Dict[str, Holding] = {h.asset_id: h for h in holdings}

    @property
    def holdings(self) -> List[Holding]:
        return list(self._holdings.values())

    def __len__(self) -> int:
        return len(self._holdings)

    def __contains__(self, asset_id: str) -> bool:
        return asset_id in self._holdings

    def get_holding(self, asset_id: str) -> Optional[Holding]:
        return self._holdings.get(asset_id)

    def held_amount(self, asset_id: str) -> Decimal:
        holding = self._holdings.get(asset_id)
        return holding.amount if holding else ZERO

    def apply_buy(
        self,
        asset_id: str,
        quantity: Decimal,
        unit_price: Decimal,
        asset: Optional[MarketAsset] = None,
        now: Optional[datetime] = None,
    ) -> Holding:
        """
        Add quantity bought at unit_price.

        The new cost basis is weighted by quantity and uses the trade price,
        never the market price.
        """
        _require_positive(quantity=quantity, unit_price=unit_price)
        now = now or utcnow()
        invested = quantity * unit_price

        existing = self._holdings.get(asset_id)
        if existing is None:
            holding = Holding(
                id=generate_id(f"holding_{asset_id}"),
                asset_id=asset_id,
                asset_symbol=asset.symbol.upper() if asset else asset_id.upper(),
                asset_name=asset.name if asset else asset_id,
                asset_image=asset.image if asset else None,
                amount=quantity,
                average_buy_price=unit_price,
                total_invested=invested,
                current_price=asset.current_price if asset else unit_price,
                last_updated=now,
            )
            self._holdings[asset_id] = holding
            return holding

        total_amount = existing.amount + quantity
        total_invested = existing.total_invested + invested
        existing.amount = total_amount
        existing.total_invested = total_invested
        existing.average_buy_price = total_invested / total_amount
        if asset is not None:
            existing.current_price = asset.current_price
        existing.last_updated = now
        return existing

    def apply_sell(
        self,
        asset_id: str,
        quantity: Decimal,
        unit_price: Decimal,
        now: Optional[datetime] = None,
    ) -> SellOutcome:
        """
        Remove quantity sold at unit_price.

        The remaining investment shrinks pro rata and the average buy price is
        carried forward. A holding that reaches zero is deleted.
        """
        _require_positive(quantity=quantity, unit_price=unit_price)

        held = self.held_amount(asset_id)
        if held < quantity:
            raise InsufficientHoldingError(
                f"Insufficient {asset_id} balance. Held: {held}, Requested: {quantity}"
            )

        holding = self._holdings[asset_id]

        realized_pnl = quantity * (unit_price - holding.average_buy_price)
        remaining = holding.amount - quantity

        if remaining == 0:
            del self._holdings[asset_id]
            return SellOutcome(holding=None, realized_pnl=realized_pnl, released_cost=holding.total_invested)

        remaining_invested = holding.total_invested * remaining / holding.amount
        released = holding.total_invested - remaining_invested
        holding.amount = remaining
        holding.total_invested = remaining_invested
        holding.last_updated = now or utcnow()
        return SellOutcome(holding=holding, realized_pnl=realized_pnl, released_cost=released)

    def revalue(self, prices: Mapping[str, Decimal], now: Optional[datetime] = None) -> int:
        """Overwrite current prices from the map, returns how many holdings were touched"""
        now = now or utcnow()
        touched = 0
        for asset_id, holding in self._holdings.items():
            price = prices.get(asset_id)
            if price is None:
                continue
            holding.current_price = Decimal(price)
            holding.last_updated = now
            touched += 1
        return touched

    def summarize(self) -> PortfolioSummary:
        if not self._holdings:
            return PortfolioSummary()

        holdings = self.holdings
        total_value = sum((h.current_value for h in holdings), ZERO)
        total_invested = sum((h.total_invested for h in holdings), ZERO)
        total_profit_loss = total_value - total_invested
        total_profit_loss_percent = (
            total_profit_loss / total_invested * HUNDRED if total_invested > 0 else ZERO
        )

        ranked = sorted(holdings, key=lambda h: h.profit_loss_percent, reverse=True)

        return PortfolioSummary(
            total_value=total_value,
            total_invested=total_invested,
            total_profit_loss=total_profit_loss,
            total_profit_loss_percent=total_profit_loss_percent,
            best_performer=ranked[0],
            worst_performer=ranked[-1],
            total_holdings=len(holdings),
        )


def _require_positive(**values: Decimal):
    for name, value in values.items():
        if value <= 0:
            raise InvalidAmountError(f"{name} must be positive, got {value}")
