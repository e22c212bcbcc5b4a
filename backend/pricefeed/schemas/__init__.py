"""
PriceFeed Schema Contracts

All JSON contracts handed out by the resolution engine.
"""

from pricefeed.schemas.market import (
    AssetType,
    MarketClass,
    Currency,
    HistoryRange,
    Quote,
    HistoricalPricePoint,
    PriceSeries,
    HistoricalPrice,
    ExchangeRate,
    ProviderDescriptor,
    SymbolMatch,
    QuoteRequest,
)
from pricefeed.schemas.indicators import (
    RiskLevel,
    StockIndicators,
)

__all__ = [
    # Market
    "AssetType",
    "MarketClass",
    "Currency",
    "HistoryRange",
    "Quote",
    "HistoricalPricePoint",
    "PriceSeries",
    "HistoricalPrice",
    "ExchangeRate",
    "ProviderDescriptor",
    "SymbolMatch",
    "QuoteRequest",
    # Indicators
    "RiskLevel",
    "StockIndicators",
]
