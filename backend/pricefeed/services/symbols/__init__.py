"""
Symbol Resolver

Pure functions: alias resolution and market classification.
"""

from pricefeed.services.symbols.resolver import (
    CRYPTO_IDS,
    TICKER_ALIASES,
    US_STOCKS,
    asset_type_for,
    classify,
    coingecko_id,
    resolve_alias,
    strip_quote_suffix,
    yahoo_symbols,
)

__all__ = [
    "CRYPTO_IDS",
    "TICKER_ALIASES",
    "US_STOCKS",
    "asset_type_for",
    "classify",
    "coingecko_id",
    "resolve_alias",
    "strip_quote_suffix",
    "yahoo_symbols",
]
