"""
Tests for the Trade Orchestrator: trade scenarios, atomicity, concurrency and idempotency.
"""
import asyncio
import gc
import weakref
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from neuracoin.ledger import (
    AssetNotFoundError,
    DuplicateRequestError,
    EventType,
    InsufficientFundsError,
    InsufficientHoldingError,
    InvalidAmountError,
    PersistenceError,
    RewardKind,
    WalletNotFoundError,
)
from neuracoin.services.trade_service import TradeService
from neuracoin.services.wallet_service import WalletService

TEST_USER = "user_test"


async def reload_wallet(session_factory, user_id=TEST_USER):
    async with session_factory() as session:
        return await WalletService(session).load_state(user_id)


async def test_buy_scenario(trades, funded_user, session_factory):
    """1000 NC, buy 0.01 BTC at 45000 with a 0.1% fee"""
    receipt = await trades.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("45000"))

    assert receipt.event.type == EventType.BUY
    assert receipt.event.fee == Decimal("0.45")
    assert receipt.event.total_cost == Decimal("450.45")
    assert receipt.wallet.balance == Decimal("549.55")
    assert receipt.holding.amount == Decimal("0.01")
    assert receipt.holding.average_buy_price == Decimal("45000")
    assert receipt.reward_event is None

    state = await reload_wallet(session_factory)
    assert state.wallet.balance == Decimal("549.55")
    assert state.wallet.wallet.total_spent == Decimal("450.45")
    assert state.portfolio.get_holding("bitcoin").total_invested == Decimal("450")
    assert state.events.events[0].id == receipt.event.id


async def test_sell_scenario(trades, funded_user, session_factory):
    """Hold 0.01 at 45000, sell it all at 50000"""
    await trades.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("45000"))

    receipt = await trades.sell(funded_user, "bitcoin", Decimal("0.01"), Decimal("50000"))

    assert receipt.event.type == EventType.SELL
    assert receipt.event.total_cost == Decimal("499.50")
    assert receipt.event.realized_pnl == Decimal("50")
    assert receipt.holding is None
    assert receipt.wallet.balance == Decimal("549.55") + Decimal("499.50")

    state = await reload_wallet(session_factory)
    assert state.portfolio.get_holding("bitcoin") is None
    assert [o.type for o in state.events.orders()] == [EventType.SELL, EventType.BUY]


async def test_second_buy_averages_cost(trades, funded_user):
    await trades.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("45000"))
    receipt = await trades.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("50000"))

    assert receipt.holding.amount == Decimal("0.02")
    assert receipt.holding.total_invested == Decimal("950")
    assert receipt.holding.average_buy_price == Decimal("47500")


async def test_buy_defaults_to_market_price(trades, funded_user, market):
    market.set_price("ethereum", Decimal("2500"))

    receipt = await trades.buy(funded_user, "ethereum", Decimal("0.1"))

    assert receipt.event.price == Decimal("2500")
    assert receipt.event.total_cost == Decimal("250.25")


async def test_trading_reward_credited_after_buy(db, market, locks, funded_user):
    service = TradeService(db, market, locks, trading_reward=Decimal("50"))

    receipt = await service.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("45000"))

    assert receipt.reward_event.reward_kind == RewardKind.TRADING
    assert receipt.wallet.balance == Decimal("599.55")
    assert receipt.wallet.total_earned == Decimal("1050")


async def test_unaffordable_buy_leaves_state_untouched(trades, funded_user, session_factory):
    before = await reload_wallet(session_factory)

    with pytest.raises(InsufficientFundsError):
        await trades.buy(funded_user, "bitcoin", Decimal("1"), Decimal("45000"))

    after = await reload_wallet(session_factory)
    assert after.to_documents() == before.to_documents()


async def test_oversell_leaves_state_untouched(trades, funded_user, session_factory):
    await trades.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("45000"))
    before = await reload_wallet(session_factory)

    with pytest.raises(InsufficientHoldingError):
        await trades.sell(funded_user, "bitcoin", Decimal("0.02"), Decimal("50000"))

    after = await reload_wallet(session_factory)
    assert after.to_documents() == before.to_documents()


async def test_unknown_asset_rejected(trades, funded_user):
    with pytest.raises(AssetNotFoundError):
        await trades.buy(funded_user, "dogecoin-classic", Decimal("1"), Decimal("1"))


async def test_non_positive_quantity_rejected(trades, funded_user):
    with pytest.raises(InvalidAmountError):
        await trades.buy(funded_user, "bitcoin", Decimal("0"), Decimal("45000"))
    with pytest.raises(InvalidAmountError):
        await trades.sell(funded_user, "bitcoin", Decimal("0.01"), Decimal("-1"))


async def test_trade_without_wallet_rejected(trades):
    with pytest.raises(WalletNotFoundError):
        await trades.buy("ghost", "bitcoin", Decimal("0.01"), Decimal("45000"))


async def test_failed_commit_rolls_back_everything(trades, funded_user, session_factory, monkeypatch):
    async def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)

    with pytest.raises(PersistenceError):
        await trades.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("45000"))

    state = await reload_wallet(session_factory)
    assert state.wallet.balance == Decimal("1000")
    assert state.portfolio.get_holding("bitcoin") is None
    assert len(state.events) == 1


async def test_concurrent_buys_never_overdraw(session_factory, market, locks, funded_user):
    """Two 600 NC buys against 1000 NC: exactly one may succeed"""

    async def attempt():
        async with session_factory() as session:
            service = TradeService(session, market, locks)
            return await service.buy(funded_user, "ethereum", Decimal("0.24"), Decimal("2500"))

    results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

    succeeded = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], InsufficientFundsError)

    state = await reload_wallet(session_factory)
    assert state.wallet.balance == Decimal("1000") - Decimal("600.6")
    assert state.portfolio.get_holding("ethereum").amount == Decimal("0.24")


async def test_idempotent_buy_returns_same_receipt(trades, funded_user, session_factory):
    first = await trades.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("45000"), idempotency_key="buy-1")
    second = await trades.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("45000"), idempotency_key="buy-1")

    assert second.event.id == first.event.id
    assert second.wallet.balance == first.wallet.balance

    state = await reload_wallet(session_factory)
    assert state.wallet.balance == Decimal("549.55")
    assert len(state.events.orders()) == 1


async def test_idempotency_key_reused_for_other_operation(trades, funded_user):
    await trades.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("45000"), idempotency_key="key-1")

    with pytest.raises(DuplicateRequestError):
        await trades.sell(funded_user, "bitcoin", Decimal("0.01"), Decimal("50000"), idempotency_key="key-1")


async def test_idempotency_key_reused_by_another_user(trades, funded_user, session_factory):
    await trades.initialize("user_other")
    await trades.buy(funded_user, "bitcoin", Decimal("0.01"), Decimal("45000"), idempotency_key="key-shared")

    with pytest.raises(DuplicateRequestError):
        await trades.buy("user_other", "ethereum", Decimal("0.1"), Decimal("3000"), idempotency_key="key-shared")

    other = await reload_wallet(session_factory, "user_other")
    assert other.wallet.balance == Decimal("1000")
    assert len(other.portfolio) == 0


async def test_user_lock_held_until_block_exits(locks):
    async with locks.hold(TEST_USER):
        held = locks.lock_for(TEST_USER)
        assert held.locked()
        assert not locks.lock_for("someone_else").locked()

    assert not held.locked()


async def test_idle_user_locks_are_dropped(locks):
    async with locks.hold(TEST_USER):
        lock_ref = weakref.ref(locks.lock_for(TEST_USER))
        assert lock_ref() is not None

    gc.collect()
    assert lock_ref() is None
