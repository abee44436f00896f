"""
Tests for the Portfolio Ledger: cost basis, sells, revaluation and summary.
"""
from decimal import Decimal

import pytest

from neuracoin.ledger import (
    InsufficientHoldingError,
    InvalidAmountError,
    MarketAsset,
    PortfolioLedger,
)

BTC = MarketAsset(id="bitcoin", symbol="btc", name="Bitcoin", current_price=Decimal("46000"))


@pytest.fixture
def ledger():
    return PortfolioLedger("alice")


def test_first_buy_creates_holding(ledger):
    holding = ledger.apply_buy("bitcoin", Decimal("0.01"), Decimal("45000"), asset=BTC)

    assert holding.asset_symbol == "BTC"
    assert holding.amount == Decimal("0.01")
    assert holding.average_buy_price == Decimal("45000")
    assert holding.total_invested == Decimal("450")
    assert holding.current_price == Decimal("46000")
    assert "bitcoin" in ledger
    assert len(ledger) == 1


def test_buy_without_asset_uses_trade_price(ledger):
    holding = ledger.apply_buy("bitcoin", Decimal("0.01"), Decimal("45000"))
    assert holding.current_price == Decimal("45000")
    assert holding.asset_symbol == "BITCOIN"


def test_second_buy_weights_average_by_quantity(ledger):
    ledger.apply_buy("bitcoin", Decimal("0.01"), Decimal("45000"))
    holding = ledger.apply_buy("bitcoin", Decimal("0.01"), Decimal("50000"))

    assert holding.amount == Decimal("0.02")
    assert holding.total_invested == Decimal("950")
    assert holding.average_buy_price == Decimal("47500")
    assert len(ledger) == 1


def test_full_sell_removes_holding(ledger):
    ledger.apply_buy("bitcoin", Decimal("0.01"), Decimal("45000"))

    outcome = ledger.apply_sell("bitcoin", Decimal("0.01"), Decimal("50000"))

    assert outcome.holding is None
    assert outcome.realized_pnl == Decimal("50")
    assert outcome.released_cost == Decimal("450")
    assert ledger.get_holding("bitcoin") is None
    assert len(ledger) == 0


def test_partial_sell_keeps_average_and_shrinks_investment(ledger):
    ledger.apply_buy("bitcoin", Decimal("0.02"), Decimal("45000"))

    outcome = ledger.apply_sell("bitcoin", Decimal("0.005"), Decimal("40000"))

    holding = outcome.holding
    assert holding.amount == Decimal("0.015")
    assert holding.average_buy_price == Decimal("45000")
    assert holding.total_invested == Decimal("675")
    assert outcome.realized_pnl == Decimal("-25")


def test_oversell_raises_and_changes_nothing(ledger):
    ledger.apply_buy("bitcoin", Decimal("0.01"), Decimal("45000"))
    before = ledger.get_holding("bitcoin").model_copy()

    with pytest.raises(InsufficientHoldingError):
        ledger.apply_sell("bitcoin", Decimal("0.02"), Decimal("50000"))

    assert ledger.get_holding("bitcoin") == before


def test_sell_unknown_asset_raises(ledger):
    with pytest.raises(InsufficientHoldingError):
        ledger.apply_sell("ethereum", Decimal("1"), Decimal("2500"))


@pytest.mark.parametrize("quantity,price", [
    (Decimal("0"), Decimal("45000")),
    (Decimal("-1"), Decimal("45000")),
    (Decimal("0.01"), Decimal("0")),
])
def test_non_positive_inputs_rejected(ledger, quantity, price):
    with pytest.raises(InvalidAmountError):
        ledger.apply_buy("bitcoin", quantity, price)
    assert len(ledger) == 0


def test_revalue_updates_derived_fields(ledger):
    ledger.apply_buy("bitcoin", Decimal("0.01"), Decimal("45000"))
    ledger.apply_buy("ethereum", Decimal("1"), Decimal("2500"))

    touched = ledger.revalue({"bitcoin": Decimal("50000"), "solana": Decimal("100")})

    assert touched == 1
    btc = ledger.get_holding("bitcoin")
    assert btc.current_value == Decimal("500")
    assert btc.profit_loss == Decimal("50")
    assert btc.profit_loss_percent == Decimal("50") / Decimal("450") * 100
    assert ledger.get_holding("ethereum").current_price == Decimal("2500")


def test_revalue_is_idempotent(ledger):
    ledger.apply_buy("bitcoin", Decimal("0.01"), Decimal("45000"))
    prices = {"bitcoin": Decimal("48000")}

    ledger.revalue(prices)
    first = ledger.summarize()
    ledger.revalue(prices)
    second = ledger.summarize()

    assert first.total_value == second.total_value
    assert first.total_profit_loss == second.total_profit_loss


def test_summary_ranks_best_and_worst(ledger):
    ledger.apply_buy("bitcoin", Decimal("0.01"), Decimal("45000"))
    ledger.apply_buy("ethereum", Decimal("1"), Decimal("2500"))
    ledger.revalue({"bitcoin": Decimal("49500"), "ethereum": Decimal("2000")})

    summary = ledger.summarize()

    assert summary.total_holdings == 2
    assert summary.total_invested == Decimal("2950")
    assert summary.total_value == Decimal("2495")
    assert summary.total_profit_loss == Decimal("-455")
    assert summary.best_performer.asset_id == "bitcoin"
    assert summary.worst_performer.asset_id == "ethereum"


def test_empty_summary():
    summary = PortfolioLedger("nobody").summarize()
    assert summary.total_holdings == 0
    assert summary.total_value == Decimal("0")
    assert summary.best_performer is None
    assert summary.worst_performer is None
