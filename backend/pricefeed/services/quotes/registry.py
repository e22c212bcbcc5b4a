"""
Provider Registry

Static, priority-ordered list of quote strategies. Built once at startup;
strategies whose credentials are missing are left out and never consulted.
"""

import logging
from typing import Iterable, Optional

from pricefeed.core.config import Settings, settings as default_settings
from pricefeed.schemas.market import AssetType, ProviderDescriptor
from pricefeed.services.http_client import HttpClient, get_http_client
from pricefeed.services.quotes.brapi_adapter import BrapiCryptoStrategy, BrapiQuoteStrategy
from pricefeed.services.quotes.crypto_adapter import CoinGeckoStrategy
from pricefeed.services.quotes.interface import QuoteStrategy
from pricefeed.services.quotes.us_stocks_adapter import (
    AlphaVantageStrategy,
    FinnhubStrategy,
    TwelveDataStrategy,
)
from pricefeed.services.quotes.yahoo_adapter import YahooChartStrategy
from pricefeed.services.quotes.yfinance_adapter import YFinanceStrategy

logger = logging.getLogger(__name__)

STRATEGY_CLASSES = (
    BrapiQuoteStrategy,
    CoinGeckoStrategy,
    YahooChartStrategy,
    BrapiCryptoStrategy,
    FinnhubStrategy,
    TwelveDataStrategy,
    AlphaVantageStrategy,
    YFinanceStrategy,
)


class ProviderRegistry:
    """Holds the registered strategies in ascending priority order."""

    def __init__(
        self,
        strategies: Iterable[QuoteStrategy],
        excluded: Optional[list[QuoteStrategy]] = None,
    ):
        self._strategies = sorted(strategies, key=lambda s: s.priority)
        self._excluded = excluded or []

    @property
    def strategies(self) -> list[QuoteStrategy]:
        return list(self._strategies)

    def eligible(self, ticker: str, asset_type: AssetType) -> list[QuoteStrategy]:
        """Strategies that can handle the ticker, highest priority first."""
        return [s for s in self._strategies if s.can_handle(ticker, asset_type)]

    def history_capable(self, ticker: str, asset_type: AssetType) -> list[QuoteStrategy]:
        return [s for s in self.eligible(ticker, asset_type) if s.supports_history]

    def describe(self) -> list[ProviderDescriptor]:
        """Registered and excluded providers, by priority."""
        everything = self._strategies + self._excluded
        return [s.describe() for s in sorted(everything, key=lambda s: s.priority)]


def build_registry(
    settings: Optional[Settings] = None,
    http: Optional[HttpClient] = None,
) -> ProviderRegistry:
    """Instantiate every known strategy and keep the ones with credentials."""
    settings = settings or default_settings
    http = http or get_http_client()

    registered = []
    excluded = []
    for strategy_class in STRATEGY_CLASSES:
        strategy = strategy_class(http, settings)
        if strategy.is_available():
            registered.append(strategy)
        else:
            logger.info(
                f"Provider {strategy.name} not registered: "
                f"missing {', '.join(strategy.required_credentials)}"
            )
            excluded.append(strategy)

    logger.info(f"Registered providers: {', '.join(s.name for s in sorted(registered, key=lambda s: s.priority))}")
    return ProviderRegistry(registered, excluded)
