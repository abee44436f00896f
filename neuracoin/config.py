from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    DATABASE_URL: str = "sqlite+aiosqlite:///./neuracoin.db"
    APP_NAME: str = "NeuraCoin Ledger Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    CURRENCY_NAME: str = "NeuraCoins"
    FEE_RATE: Decimal = Decimal("0.001")

    WELCOME_BONUS: Decimal = Decimal("1000")
    DAILY_LOGIN_BONUS: Decimal = Decimal("50")
    TRADING_REWARD: Decimal = Decimal("50")
    REFERRAL_BONUS: Decimal = Decimal("500")

    MARKET_API_URL: str = "https://api.coingecko.com/api/v3"
    MARKET_CURRENCY: str = "usd"
    MARKET_TIMEOUT_SECONDS: float = 10.0
    MARKET_MAX_RETRIES: int = 3
    MARKET_RETRY_DELAY_SECONDS: float = 1.0
    MARKET_TOP_LIMIT: int = 50
    MARKET_CACHE_SECONDS: int = 60

    PORTFOLIO_REFRESH_MINUTES: float = 2
    IDEMPOTENCY_TTL_HOURS: int = 24

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
