"""
Currency Normalizer

CONTRACT:
    Input:  price + from/to currency (+ optional as-of date)
    Output: converted price (+ the ExchangeRate that was applied)

USD <-> BRL only. Falls back to a static rate (degraded) when every
exchange-rate source is unavailable.
"""

from pricefeed.services.currency.normalizer import (
    CurrencyNormalizer,
    get_currency_normalizer,
)

__all__ = [
    "CurrencyNormalizer",
    "get_currency_normalizer",
]
