"""
Indicator API Endpoints

Endpoints for technical indicator calculations.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pricefeed.schemas.indicators import StockIndicators
from pricefeed.schemas.market import AssetType, Currency, HistoryRange
from pricefeed.services.base import NotFound
from pricefeed.services.quotes import MarketDataService, get_market_data_service

logger = logging.getLogger(__name__)

router = APIRouter()


class IndicatorResponse(BaseModel):
    """Indicators together with the series they were computed from."""
    symbol: str
    range: HistoryRange
    bars: int
    first_date: str
    last_date: str
    last_close: float
    indicators: StockIndicators


@router.get("/{symbol}", response_model=IndicatorResponse)
async def get_indicators(
    symbol: str,
    range: HistoryRange = HistoryRange.Y1,
    asset_type: Optional[AssetType] = None,
    currency: Optional[Currency] = None,
    service: MarketDataService = Depends(get_market_data_service),
):
    """
    Calculate indicators over a daily series.

    Use range=1y or longer for SMA 200. Windowed indicators are null when
    the series is too short for them.
    """
    points = await service.get_historical_series(symbol, range, asset_type, currency)

    if not points:
        raise NotFound(service.name, f"No history for {symbol}")

    indicators = service.calculate_indicators(points)
    logger.info(f"Indicators for {symbol}: {len(points)} bars, risk {indicators.risk_level.value}")

    return IndicatorResponse(
        symbol=symbol.upper(),
        range=range,
        bars=len(points),
        first_date=points[0].date.date().isoformat(),
        last_date=points[-1].date.date().isoformat(),
        last_close=points[-1].close,
        indicators=indicators,
    )
