"""
Market Data API Endpoints

Endpoints for quotes, historical prices, series and symbol search.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pricefeed.schemas.market import (
    AssetType,
    Currency,
    HistoricalPrice,
    HistoricalPricePoint,
    HistoryRange,
    Quote,
    SymbolMatch,
)
from pricefeed.services.base import NotFound
from pricefeed.services.quotes import MarketDataService, get_market_data_service

router = APIRouter()

MAX_BATCH_SYMBOLS = 50


@router.get("/quote/{symbol}", response_model=Quote)
async def get_quote(
    symbol: str,
    asset_type: Optional[AssetType] = None,
    currency: Currency = Currency.BRL,
    service: MarketDataService = Depends(get_market_data_service),
):
    """
    Get the live quote for a single symbol.

    Friendly names are accepted ("nike", "bitcoin").
    """
    quote = await service.get_quote(symbol, asset_type, currency)

    if quote is None:
        raise NotFound(service.name, f"Quote not found for {symbol}")

    return quote


@router.get("/quotes")
async def get_quotes(
    symbols: str = Query(..., description="Comma-separated symbols"),
    asset_type: Optional[AssetType] = None,
    currency: Currency = Currency.BRL,
    service: MarketDataService = Depends(get_market_data_service),
):
    """
    Get quotes for multiple symbols.

    Symbols that cannot be priced are listed under "missing".
    """
    symbol_list = [s.strip() for s in symbols.split(",") if s.strip()][:MAX_BATCH_SYMBOLS]
    quotes = await service.get_quotes(symbol_list, asset_type, currency)

    return {
        "quotes": [q.model_dump(mode="json") for q in quotes.values()],
        "missing": [s for s in symbol_list if s not in quotes],
    }


@router.get("/historical/{symbol}", response_model=HistoricalPrice)
async def get_historical_price(
    symbol: str,
    date: date = Query(..., description="Target date (YYYY-MM-DD)"),
    asset_type: Optional[AssetType] = None,
    currency: Currency = Currency.BRL,
    service: MarketDataService = Depends(get_market_data_service),
):
    """
    Get the closing price of a symbol on a date.

    Weekends and holidays resolve to the previous trading day. When no
    history is available the live price is returned with degraded=true.
    """
    result = await service.get_historical_price(symbol, date, asset_type, currency)

    if result is None:
        raise NotFound(service.name, f"No price for {symbol} on {date}")

    return result


@router.get("/series/{symbol}", response_model=list[HistoricalPricePoint])
async def get_series(
    symbol: str,
    range: HistoryRange = HistoryRange.M1,
    asset_type: Optional[AssetType] = None,
    currency: Optional[Currency] = None,
    service: MarketDataService = Depends(get_market_data_service),
):
    """
    Get daily bars for a range (1mo, 3mo, 6mo, 1y, 2y, 5y).

    Prices are in the provider's currency unless currency is given.
    """
    points = await service.get_historical_series(symbol, range, asset_type, currency)

    if not points:
        raise NotFound(service.name, f"No history for {symbol}")

    return points


@router.get("/search", response_model=list[SymbolMatch])
async def search_symbols(
    q: str = Query(..., description="Search query (min 2 characters)"),
    asset_type: AssetType = AssetType.STOCK,
    limit: int = Query(default=10, ge=1, le=20),
    service: MarketDataService = Depends(get_market_data_service),
):
    """Search symbols by ticker or company name."""
    return await service.search_symbols(q, asset_type, limit)


@router.get("/sources")
async def get_data_sources(
    service: MarketDataService = Depends(get_market_data_service),
):
    """Registered providers, their priority and credential status."""
    return service.data_sources_status()
