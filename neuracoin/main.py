from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import logging

from neuracoin.config import settings
from neuracoin.database import AsyncSessionLocal, init_db, close_db
from neuracoin.api.v1.wallets import router as wallet_router
from neuracoin.api.v1.trades import router as trade_router
from neuracoin.api.v1.portfolio import router as portfolio_router
from neuracoin.api.v1.market import router as market_router
from neuracoin.services.locks import UserLockRegistry
from neuracoin.services.market_data import CoinGeckoMarketData
from neuracoin.services.refresher import PortfolioRefresher

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting NeuraCoin Ledger Service...")
    logger.info(f"Database URL: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else settings.DATABASE_URL}")
    await init_db()

    app.state.market = CoinGeckoMarketData()
    app.state.locks = UserLockRegistry()
    app.state.refresher = PortfolioRefresher(
        session_factory=AsyncSessionLocal,
        market=app.state.market,
        locks=app.state.locks,
        interval_minutes=settings.PORTFOLIO_REFRESH_MINUTES,
    )
    app.state.refresher.start()

    yield

    logger.info("Shutting down NeuraCoin Ledger Service...")
    await app.state.refresher.stop()
    await app.state.market.aclose()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Validation error handler - Returns detailed, user-friendly error messages
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed messages"""
    errors = []
    for error in exc.errors():
        error_detail = {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        }

        # Add input value if available
        if "input" in error and error["input"] is not None:
            error_detail["input"] = str(error["input"])

        errors.append(error_detail)

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "message": "The request contains invalid data",
            "details": errors,
            "request_path": request.url.path
        }
    )

# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An internal server error occurred",
            "error": str(exc) if settings.DEBUG else "Internal Server Error"
        }
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "auto_refresh": app.state.refresher.running if hasattr(app.state, "refresher") else False
    }


app.include_router(wallet_router, prefix="/api/v1")
app.include_router(trade_router, prefix="/api/v1")
app.include_router(portfolio_router, prefix="/api/v1")
app.include_router(market_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "neuracoin.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
