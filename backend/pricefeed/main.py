"""
PriceFeed Backend - FastAPI Application

Serves quotes, historical closes, daily series and indicators resolved
across the registered market-data providers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pricefeed.core.config import settings
from pricefeed.api.v1 import router as api_v1_router
from pricefeed.services.base import ExternalAPIError, NotFound, ValidationError
from pricefeed.services.quotes import MarketDataService, get_market_data_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the market data service up front and release its HTTP session on exit."""
    service = get_market_data_service()

    providers = service.registry.describe()
    registered = [p.name for p in providers if p.available]
    missing = [p.name for p in providers if not p.available]

    print(f"{settings.app_name} v{settings.app_version} ({settings.environment})")
    print(f"Providers registered: {', '.join(registered) or 'none'}")
    if missing:
        print(f"Providers without credentials: {', '.join(missing)}")

    yield

    print("Closing provider sessions...")
    await service.close()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    PriceFeed Market Data API

    ## Resolution pipeline
    - **Symbol Resolver**: aliases ("nike" -> NKE) and market classification
    - **Provider Strategies**: Brapi, CoinGecko, Yahoo, Finnhub, Twelve Data, Alpha Vantage, yfinance
    - **Fallback Orchestrator**: priority order, first valid price wins, positive/negative cache
    - **Currency Normalizer**: USD <-> BRL with a flagged static fallback rate
    - **Historical Resolver**: [D-7, D+3] window, previous trading day on weekends/holidays
    - **Indicator Calculator**: volatility, drawdown, SMA/EMA/MACD, RSI, Bollinger, ATR (NumPy)
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(dict.fromkeys([settings.frontend_url, *settings.allowed_origins])),
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


# ============ Error mapping ============


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(ExternalAPIError)
async def external_api_error_handler(request: Request, exc: ExternalAPIError):
    logger.error(f"Upstream error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "Upstream provider error"})


app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check(service: MarketDataService = Depends(get_market_data_service)):
    """Liveness plus provider registration; does not call any provider."""
    status = service.data_sources_status()
    return {
        "status": "healthy" if status["available"] else "degraded",
        "version": settings.app_version,
        "providers_available": status["available"],
        "cache": status["cache"],
    }


@app.get("/")
async def root():
    return {
        "message": f"{settings.app_name} API",
        "docs": "/docs",
        "sources": "/api/v1/market/sources",
    }
