"""
CONTRACT 2: Indicator Calculator

Input: list[HistoricalPricePoint] (ascending by date)
Output: StockIndicators

Pure Python/NumPy - computed fresh on every call, never cached here.
Windowed indicators are None when the series is too short for them.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class RiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"


class StockIndicators(BaseModel):
    """Volatility, trend and oscillator readings for one series."""

    volatility: float = Field(..., ge=0, description="Annualized volatility %")
    max_drawdown: float = Field(..., ge=0, description="Largest peak-to-close decline %")
    avg_volume: float = Field(default=0.0, ge=0)
    risk_level: RiskLevel

    # Moving averages
    sma_20: Optional[float] = None
    sma_50: Optional[float] = None
    sma_200: Optional[float] = None
    ema_12: Optional[float] = None
    ema_26: Optional[float] = None

    # MACD
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None

    # Oscillators / bands
    rsi: Optional[float] = Field(default=None, ge=0, le=100)
    bollinger_upper: Optional[float] = None
    bollinger_middle: Optional[float] = None
    bollinger_lower: Optional[float] = None
    atr: Optional[float] = None

    # Return statistics
    std_dev: Optional[float] = Field(default=None, description="Daily return stdev %")
    variance: Optional[float] = None
    daily_returns: list[float] = Field(
        default_factory=list,
        description="Last 30 daily returns in %",
    )
