"""
Indicator Calculator Service Implementation

Turns a daily price series into volatility, drawdown, moving averages,
oscillators and a coarse risk classification.
Pure Python/NumPy calculations, safe to run inline.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from pricefeed.schemas.indicators import RiskLevel, StockIndicators
from pricefeed.schemas.market import HistoricalPricePoint
from pricefeed.services.indicators.interface import IndicatorServiceInterface
from pricefeed.services.indicators.calculations import (
    annualized_volatility,
    atr,
    bollinger_bands,
    daily_returns,
    ema,
    last_value,
    macd,
    max_drawdown,
    rsi,
    sma,
)

logger = logging.getLogger(__name__)

RETURNS_HISTORY = 30


def _points_to_arrays(points: Sequence[HistoricalPricePoint]) -> tuple:
    """Convert bars to numpy arrays."""
    highs = np.array([p.high for p in points], dtype=float)
    lows = np.array([p.low for p in points], dtype=float)
    closes = np.array([p.close for p in points], dtype=float)
    volumes = np.array([p.volume for p in points], dtype=float)
    return highs, lows, closes, volumes


def risk_level_for(volatility: float) -> RiskLevel:
    """Bucket annualized volatility (%) into a risk level."""
    if volatility < 15:
        return RiskLevel.LOW
    if volatility < 25:
        return RiskLevel.MODERATE
    if volatility < 40:
        return RiskLevel.HIGH
    return RiskLevel.VERY_HIGH


def _round(value: Optional[float], digits: int = 4) -> Optional[float]:
    return None if value is None else round(value, digits)


def calculate_indicators(points: Sequence[HistoricalPricePoint]) -> StockIndicators:
    """
    Calculate indicators for an ascending daily series.

    Fewer than two bars yields zero volatility/drawdown, low risk and no
    windowed indicators.
    """
    if len(points) < 2:
        return StockIndicators(
            volatility=0.0,
            max_drawdown=0.0,
            avg_volume=float(points[0].volume) if points else 0.0,
            risk_level=RiskLevel.LOW,
        )

    highs, lows, closes, volumes = _points_to_arrays(points)
    returns = daily_returns(closes)

    volatility = annualized_volatility(returns)

    ema_12 = last_value(ema(closes, 12))
    ema_26 = last_value(ema(closes, 26))
    macd_line, signal_line, histogram = macd(closes)

    bands = bollinger_bands(closes, 20)
    upper, middle, lower = bands if bands else (None, None, None)

    std = float(np.std(returns)) if len(returns) else 0.0

    return StockIndicators(
        volatility=round(volatility, 4),
        max_drawdown=round(max_drawdown(closes), 4),
        avg_volume=float(np.mean(volumes)),
        risk_level=risk_level_for(volatility),
        sma_20=_round(last_value(sma(closes, 20))),
        sma_50=_round(last_value(sma(closes, 50))),
        sma_200=_round(last_value(sma(closes, 200))),
        ema_12=_round(ema_12),
        ema_26=_round(ema_26),
        macd=_round(last_value(macd_line)),
        macd_signal=_round(last_value(signal_line)),
        macd_histogram=_round(last_value(histogram)),
        rsi=_round(rsi(returns, 14), 2),
        bollinger_upper=_round(upper),
        bollinger_middle=_round(middle),
        bollinger_lower=_round(lower),
        atr=_round(atr(highs, lows, closes, 14)),
        std_dev=round(std * 100, 4),
        variance=round(std ** 2 * 10000, 4),
        daily_returns=[round(float(r) * 100, 4) for r in returns[-RETURNS_HISTORY:]],
    )


class IndicatorService(IndicatorServiceInterface):
    """
    Indicator Calculator Service.

    Stateless; results are never cached here.
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    async def execute(self, input_data: list[HistoricalPricePoint]) -> StockIndicators:
        return self.calculate(input_data)

    def calculate(self, points: Sequence[HistoricalPricePoint]) -> StockIndicators:
        indicators = calculate_indicators(points)
        logger.debug(
            f"Indicators over {len(points)} bars: "
            f"vol={indicators.volatility:.2f}% risk={indicators.risk_level.value}"
        )
        return indicators

    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        return True


# Singleton instance
_service_instance: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get or create indicator service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = IndicatorService()
    return _service_instance
