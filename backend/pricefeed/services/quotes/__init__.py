"""
Market Data Service

CONTRACT:
    Input:  QuoteRequest (symbol + asset type + currency)
    Output: Quote | None

RESPONSIBILITIES:
    - Route tickers to priority-ordered provider strategies
    - Fall back to the next provider on any failure (no retries)
    - Cache results and failures
    - Normalize prices to the requested currency
    - Resolve historical closes and ranged series
    - Symbol search

Providers: Brapi, CoinGecko, Yahoo Finance, Finnhub, Twelve Data,
Alpha Vantage and yfinance. Keyed providers are registered only when
their credentials are configured.
"""

from pricefeed.services.quotes.interface import (
    MarketDataServiceInterface,
    QuoteStrategy,
)
from pricefeed.services.quotes.registry import ProviderRegistry, build_registry
from pricefeed.services.quotes.orchestrator import QuoteOrchestrator
from pricefeed.services.quotes.symbol_search import SymbolSearch
from pricefeed.services.quotes.service import (
    MarketDataService,
    get_market_data_service,
)

__all__ = [
    "MarketDataServiceInterface",
    "QuoteStrategy",
    "ProviderRegistry",
    "build_registry",
    "QuoteOrchestrator",
    "SymbolSearch",
    "MarketDataService",
    "get_market_data_service",
]
