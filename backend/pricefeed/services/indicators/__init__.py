"""
Indicator Calculator Service

CONTRACT:
    Input:  list[HistoricalPricePoint] (ascending)
    Output: StockIndicators

RESPONSIBILITIES:
    - Annualized volatility and max drawdown
    - SMA 20/50/200, EMA 12/26, MACD (+ signal/histogram)
    - RSI 14, Bollinger Bands 20, ATR 14
    - Risk classification from volatility

PURE PYTHON - Uses NumPy for calculations.
Windowed indicators are omitted (None) when history is insufficient.
"""

from pricefeed.services.indicators.interface import IndicatorServiceInterface
from pricefeed.services.indicators.service import (
    IndicatorService,
    calculate_indicators,
    get_indicator_service,
    risk_level_for,
)

__all__ = [
    "IndicatorServiceInterface",
    "IndicatorService",
    "calculate_indicators",
    "get_indicator_service",
    "risk_level_for",
]
