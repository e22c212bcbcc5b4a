"""
Market Data Service Implementation

Public entry point of the resolution engine. Resolves aliases, infers the
asset type and delegates to the orchestrator, historical resolver,
indicator calculator and symbol search.
"""

import logging
from datetime import date
from typing import Optional, Sequence

from pricefeed.schemas.indicators import StockIndicators
from pricefeed.schemas.market import (
    AssetType,
    Currency,
    HistoricalPrice,
    HistoricalPricePoint,
    HistoryRange,
    Quote,
    QuoteRequest,
    SymbolMatch,
)
from pricefeed.services.base import ValidationError
from pricefeed.services.cache.memory_cache import QuoteCache, get_quote_cache
from pricefeed.services.currency.normalizer import CurrencyNormalizer
from pricefeed.services.historical.resolver import HistoricalResolver
from pricefeed.services.http_client import HttpClient, get_http_client
from pricefeed.services.indicators.service import IndicatorService, get_indicator_service
from pricefeed.services.quotes.interface import MarketDataServiceInterface
from pricefeed.services.quotes.orchestrator import QuoteOrchestrator
from pricefeed.services.quotes.registry import ProviderRegistry, build_registry
from pricefeed.services.quotes.symbol_search import SymbolSearch
from pricefeed.services.symbols import asset_type_for, classify, resolve_alias

logger = logging.getLogger(__name__)

# Liquid listing used to check provider connectivity
HEALTH_CHECK_SYMBOL = "PETR4"


class MarketDataService(MarketDataServiceInterface):
    """
    Market Data Service.

    One instance per process. Owns the shared HTTP session; call close()
    on shutdown.
    """

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        cache: Optional[QuoteCache] = None,
        http: Optional[HttpClient] = None,
        normalizer: Optional[CurrencyNormalizer] = None,
        indicators: Optional[IndicatorService] = None,
        search: Optional[SymbolSearch] = None,
    ):
        self._http = http or get_http_client()
        self.cache = cache or get_quote_cache()
        self.registry = registry or build_registry(http=self._http)
        self.normalizer = normalizer or CurrencyNormalizer(http=self._http, cache=self.cache)
        self.orchestrator = QuoteOrchestrator(self.registry, self.cache, self.normalizer)
        self.historical = HistoricalResolver(
            self.registry, self.orchestrator, self.cache, self.normalizer
        )
        self.indicators = indicators or get_indicator_service()
        self.symbol_search = search or SymbolSearch(http=self._http)

    @property
    def name(self) -> str:
        return "MarketDataService"

    def resolve(self, symbol: str, asset_type: Optional[AssetType] = None) -> tuple[str, AssetType]:
        """Canonical ticker and asset type for user input."""
        raw = (symbol or "").strip().upper()
        if raw.endswith(".SA"):
            raw = raw[:-3]

        ticker = resolve_alias(raw)
        if not ticker:
            raise ValidationError(self.name, f"Invalid symbol: {symbol!r}")

        return ticker, asset_type or asset_type_for(ticker)

    async def execute(self, input_data: QuoteRequest) -> Optional[Quote]:
        return await self.get_quote(input_data.symbol, input_data.asset_type, input_data.currency)

    async def get_quote(
        self,
        ticker: str,
        asset_type: Optional[AssetType] = None,
        currency: Currency = Currency.BRL,
    ) -> Optional[Quote]:
        """Live quote in the requested currency, or None."""
        ticker, asset_type = self.resolve(ticker, asset_type)
        return await self.orchestrator.get_quote(ticker, asset_type, currency)

    async def get_quotes(
        self,
        tickers: Sequence[str],
        asset_type: Optional[AssetType] = None,
        currency: Currency = Currency.BRL,
    ) -> dict[str, Quote]:
        """
        Batch quotes keyed by the symbol as given.

        Symbols that cannot be priced (or are invalid) are left out.
        """
        canonical: dict[str, tuple[str, AssetType]] = {}
        for raw in tickers:
            try:
                canonical[raw] = self.resolve(raw, asset_type)
            except ValidationError as e:
                logger.warning(str(e))

        # Group by asset type so the orchestrator batches stay homogeneous
        resolved: dict[tuple[str, AssetType], Quote] = {}
        for kind in {kind for _, kind in canonical.values()}:
            names = [t for t, k in canonical.values() if k == kind]
            for ticker, quote in (await self.orchestrator.get_quotes(names, kind, currency)).items():
                resolved[(ticker, kind)] = quote

        return {
            raw: resolved[key]
            for raw, key in canonical.items()
            if key in resolved
        }

    async def get_historical_price(
        self,
        ticker: str,
        target: date,
        asset_type: Optional[AssetType] = None,
        currency: Currency = Currency.BRL,
    ) -> Optional[HistoricalPrice]:
        """Close for a calendar date (degraded live price as a last resort)."""
        ticker, asset_type = self.resolve(ticker, asset_type)
        return await self.historical.get_historical_price(ticker, target, asset_type, currency)

    async def get_historical_series(
        self,
        ticker: str,
        range_: HistoryRange = HistoryRange.M1,
        asset_type: Optional[AssetType] = None,
        currency: Optional[Currency] = None,
    ) -> list[HistoricalPricePoint]:
        """Ascending daily bars; empty when no provider has history."""
        ticker, asset_type = self.resolve(ticker, asset_type)
        series = await self.orchestrator.get_series(ticker, range_, asset_type, currency)
        return list(series.points) if series else []

    def calculate_indicators(self, series: Sequence[HistoricalPricePoint]) -> StockIndicators:
        return self.indicators.calculate(series)

    async def search_symbols(
        self,
        query: str,
        asset_type: AssetType = AssetType.STOCK,
        limit: int = 10,
    ) -> list[SymbolMatch]:
        return await self.symbol_search.search(query, asset_type, limit)

    def data_sources_status(self) -> dict:
        """Registered providers and cache counters."""
        providers = self.registry.describe()
        return {
            "providers": [p.model_dump() for p in providers],
            "available": sum(1 for p in providers if p.available),
            "cache": self.cache.stats(),
        }

    async def health_check(self) -> bool:
        """True when at least one provider can price a liquid listing."""
        if not self.registry.strategies:
            return False

        ticker = HEALTH_CHECK_SYMBOL
        asset_type = asset_type_for(ticker)
        for strategy in self.registry.eligible(ticker, asset_type):
            if await strategy.get_quote(ticker, asset_type, Currency.BRL) is not None:
                return True

        logger.warning(f"Health check: no provider priced {ticker} ({classify(ticker).value})")
        return False

    async def close(self) -> None:
        await self._http.close()


# Singleton instance
_service_instance: Optional[MarketDataService] = None


def get_market_data_service() -> MarketDataService:
    """Get or create market data service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = MarketDataService()
    return _service_instance
