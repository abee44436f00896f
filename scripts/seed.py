"""Database Seed Script - Creates demo users with a first trade"""
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from decimal import Decimal

from neuracoin.config import settings
from neuracoin.database import AsyncSessionLocal, init_db
from neuracoin.services.locks import UserLockRegistry
from neuracoin.services.market_data import StaticMarketData
from neuracoin.services.trade_service import TradeService
from neuracoin.storage import KeyValueStore
from neuracoin.utils.idempotency import generate_idempotency_key

DEMO_USERS = [
    {"user_id": "user_alice", "asset_id": "bitcoin", "quantity": Decimal("0.01")},
    {"user_id": "user_bob", "asset_id": "ethereum", "quantity": Decimal("0.2")},
    {"user_id": "user_charlie", "asset_id": "solana", "quantity": Decimal("5")},
]


async def seed_database():
    """Seed the database with demo wallets and portfolios"""
    print("=" * 60)
    print("DATABASE SEEDING STARTED")
    print("=" * 60)

    await init_db()
    market = StaticMarketData()
    locks = UserLockRegistry()

    async with AsyncSessionLocal() as session:
        existing = await KeyValueStore(session).keys("wallet_")
        if existing:
            print("\n⚠️  Database already seeded. Skipping...")
            return

    print("\n1️⃣  Opening Wallets and Placing First Trades...")

    for user in DEMO_USERS:
        user_id = user["user_id"]
        async with AsyncSessionLocal() as session:
            service = TradeService(session, market, locks, trading_reward=settings.TRADING_REWARD)
            await service.initialize(user_id)
            receipt = await service.buy(
                user_id=user_id,
                asset_id=user["asset_id"],
                quantity=user["quantity"],
                idempotency_key=generate_idempotency_key("seed", user_id),
            )
        print(f"\n   👤 User: {user_id}")
        print(f"      ✓ {receipt.event.description}")
        print(f"      ✓ Balance: {receipt.wallet.balance:.2f} {settings.CURRENCY_NAME}")

    print("\n" + "=" * 60)
    print("✅ DATABASE SEEDING COMPLETED SUCCESSFULLY")
    print("=" * 60)

    print("\n💡 NEXT STEPS:")
    print("   1. Start the API server: uvicorn neuracoin.main:app --reload")
    print("   2. Visit: http://localhost:8000/docs")
    print("   3. Test the endpoints with the demo users above")

    print("\n📝 SAMPLE API REQUESTS:")
    print("   • Get Balance:")
    print("     GET /api/v1/wallets/user_alice/balance")
    print("\n   • Buy:")
    print("     POST /api/v1/trades/buy")
    print("     Header: Idempotency-Key: buy_alice_001")
    print("     Body: {\"user_id\": \"user_alice\", \"asset_id\": \"bitcoin\", \"quantity\": \"0.001\"}")
    print("\n   • Sell:")
    print("     POST /api/v1/trades/sell")
    print("     Header: Idempotency-Key: sell_alice_001")
    print("     Body: {\"user_id\": \"user_alice\", \"asset_id\": \"bitcoin\", \"quantity\": \"0.005\"}")

    print("\n" + "=" * 60)


async def main():
    """Main entry point"""
    try:
        await seed_database()
    except Exception as e:
        print(f"\n❌ Seeding failed: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
