"""
Historical Resolver

CONTRACT:
    Input:  ticker + target date + asset type + currency
    Output: HistoricalPrice (degraded=True when the live quote stood in)

RESPONSIBILITIES:
    - Query a [D-7, D+3] window from history-capable providers
    - Pick the exact day, else the previous trading day, else the next one
    - Convert at the exchange rate of the target date
"""

from pricefeed.services.historical.window import select_close, utc_day, window_bounds
from pricefeed.services.historical.resolver import HistoricalResolver

__all__ = [
    "HistoricalResolver",
    "select_close",
    "utc_day",
    "window_bounds",
]
