"""
Technical Indicator Calculations

Pure Python/NumPy implementations of technical indicators.
All math is deterministic. Functions returning arrays pad the warm-up
period with NaN; functions returning scalars return None when the input
is too short.
"""

import numpy as np
from typing import Optional

TRADING_DAYS_PER_YEAR = 252


# =============================================================================
# RETURNS & RISK
# =============================================================================


def daily_returns(closes: np.ndarray) -> np.ndarray:
    """Simple returns (c[i] - c[i-1]) / c[i-1]; skips non-positive previous closes."""
    if len(closes) < 2:
        return np.array([])

    prev = closes[:-1]
    curr = closes[1:]
    valid = prev > 0
    return (curr[valid] - prev[valid]) / prev[valid]


def annualized_volatility(returns: np.ndarray) -> float:
    """Population stdev of daily returns, annualized, in percent."""
    if len(returns) == 0:
        return 0.0
    return float(np.std(returns) * np.sqrt(TRADING_DAYS_PER_YEAR) * 100)


def max_drawdown(closes: np.ndarray) -> float:
    """Largest decline from a running peak, in percent."""
    if len(closes) == 0:
        return 0.0

    running_peak = np.maximum.accumulate(closes)
    drawdowns = (running_peak - closes) / running_peak * 100
    return float(np.max(drawdowns))


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def sma(data: np.ndarray, period: int) -> np.ndarray:
    """Simple Moving Average."""
    if len(data) < period:
        return np.full(len(data), np.nan)

    result = np.full(len(data), np.nan)
    for i in range(period - 1, len(data)):
        result[i] = np.mean(data[i - period + 1 : i + 1])
    return result


def ema(data: np.ndarray, period: int) -> np.ndarray:
    """Exponential Moving Average, seeded with the SMA of the first period."""
    if len(data) < period:
        return np.full(len(data), np.nan)

    result = np.full(len(data), np.nan)
    multiplier = 2 / (period + 1)

    # Start with SMA
    result[period - 1] = np.mean(data[:period])

    for i in range(period, len(data)):
        result[i] = (data[i] - result[i - 1]) * multiplier + result[i - 1]

    return result


def last_value(values: np.ndarray) -> Optional[float]:
    """Last element as a float, or None if missing/NaN."""
    if len(values) == 0 or np.isnan(values[-1]):
        return None
    return float(values[-1])


# =============================================================================
# MOMENTUM
# =============================================================================


def macd(
    closes: np.ndarray,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    MACD (Moving Average Convergence Divergence).

    Returns: (macd_line, signal_line, histogram)

    The signal line is an EMA over the defined part of the MACD line, so it
    needs slow_period + signal_period - 1 closes.
    """
    fast_ema = ema(closes, fast_period)
    slow_ema = ema(closes, slow_period)

    macd_line = fast_ema - slow_ema

    signal_line = np.full(len(closes), np.nan)
    defined = ~np.isnan(macd_line)
    if np.count_nonzero(defined) >= signal_period:
        signal_line[defined] = ema(macd_line[defined], signal_period)

    histogram = macd_line - signal_line

    return macd_line, signal_line, histogram


def rsi(returns: np.ndarray, period: int = 14) -> Optional[float]:
    """
    Relative Strength Index over the last ``period`` returns.

    Plain averages (sum / period), no Wilder smoothing. 100 when there
    were no losses in the window.
    """
    if len(returns) < period:
        return None

    window = returns[-period:]
    avg_gain = np.sum(window[window > 0]) / period
    avg_loss = np.sum(-window[window < 0]) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return float(100 - (100 / (1 + rs)))


# =============================================================================
# VOLATILITY
# =============================================================================


def bollinger_bands(
    closes: np.ndarray, period: int = 20, std_dev: float = 2.0
) -> Optional[tuple[float, float, float]]:
    """
    Bollinger Bands on the last ``period`` closes (population stdev).

    Returns: (upper, middle, lower)
    """
    if len(closes) < period:
        return None

    window = closes[-period:]
    middle = float(np.mean(window))
    std = float(np.std(window))
    return middle + std_dev * std, middle, middle - std_dev * std


def true_range(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    """max(high-low, |high-prevClose|, |low-prevClose|) from the second bar on."""
    if len(closes) < 2:
        return np.array([])

    prev_close = closes[:-1]
    high = highs[1:]
    low = lows[1:]
    return np.maximum.reduce([
        high - low,
        np.abs(high - prev_close),
        np.abs(low - prev_close),
    ])


def atr(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 14
) -> Optional[float]:
    """
    Average True Range over the last ``period`` true ranges.

    None when a bar in that window has no high/low (stored as 0).
    """
    tr = true_range(highs, lows, closes)
    if len(tr) < period:
        return None
    if np.any(highs[-period:] <= 0) or np.any(lows[-period:] <= 0):
        return None
    return float(np.mean(tr[-period:]))
