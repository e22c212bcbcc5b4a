"""
Fallback Orchestrator

Walks the registered strategies in priority order until one produces a
valid price, converts it to the requested currency and caches the outcome.
Failures are cached too, so a ticker nobody can price does not hit every
provider on every request.
"""

import asyncio
import logging
from typing import Iterable, Optional

from pricefeed.core.config import settings
from pricefeed.schemas.market import (
    AssetType,
    Currency,
    HistoricalPricePoint,
    HistoryRange,
    PriceSeries,
    Quote,
)
from pricefeed.services.cache.memory_cache import QuoteCache
from pricefeed.services.currency.normalizer import CurrencyNormalizer
from pricefeed.services.quotes.registry import ProviderRegistry
from pricefeed.services.symbols import asset_type_for

logger = logging.getLogger(__name__)


def scale_points(points: list[HistoricalPricePoint], factor: float) -> list[HistoricalPricePoint]:
    """Multiply every price field of a series by a conversion factor."""
    return [
        p.model_copy(update={
            "open": p.open * factor,
            "high": p.high * factor,
            "low": p.low * factor,
            "close": p.close * factor,
        })
        for p in points
    ]


class QuoteOrchestrator:
    """
    Provider fallback with positive/negative caching.

    No retries and no backoff: a provider that fails (HTTP 429 included)
    is simply skipped for this request.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        cache: QuoteCache,
        normalizer: CurrencyNormalizer,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
    ):
        self.registry = registry
        self.cache = cache
        self.normalizer = normalizer
        self.batch_size = batch_size or settings.batch_size
        self.batch_delay = settings.batch_delay_seconds if batch_delay is None else batch_delay

    # ============ Live quotes ============

    async def get_quote(
        self,
        ticker: str,
        asset_type: AssetType,
        currency: Currency = Currency.BRL,
    ) -> Optional[Quote]:
        """Resolve a live quote in the requested currency, or None."""
        key = ("quote", ticker, asset_type.value, currency.value)

        if self.cache.is_failed(key):
            logger.debug(f"{ticker} recently failed, skipping providers")
            return None

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        for strategy in self.registry.eligible(ticker, asset_type):
            quote = await strategy.get_quote(ticker, asset_type, currency)
            if quote is None or quote.price <= 0:
                continue

            quote = await self._to_currency(quote, currency)
            self.cache.put(key, quote, settings.quote_cache_ttl)
            logger.info(f"{ticker}: {quote.price:.4f} {quote.currency.value} via {quote.source}")
            return quote

        logger.warning(f"No provider could price {ticker} ({asset_type.value})")
        self.cache.mark_failed(key)
        return None

    async def _to_currency(self, quote: Quote, currency: Currency) -> Quote:
        if quote.currency == currency:
            return quote

        price, rate = await self.normalizer.convert_with_rate(quote.price, quote.currency, currency)
        factor = price / quote.price

        return quote.model_copy(update={
            "price": price,
            "change": quote.change * factor,
            "currency": currency,
            "degraded": quote.degraded or bool(rate and rate.degraded),
        })

    async def get_quotes(
        self,
        tickers: Iterable[str],
        asset_type: Optional[AssetType] = None,
        currency: Currency = Currency.BRL,
    ) -> dict[str, Quote]:
        """
        Resolve many tickers.

        Tickers are processed in batches run concurrently, with a short
        pause between batches to stay under provider rate limits. Tickers
        that cannot be priced are absent from the result.
        """
        unique = list(dict.fromkeys(tickers))
        results: dict[str, Quote] = {}

        for start in range(0, len(unique), self.batch_size):
            if start > 0 and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

            batch = unique[start:start + self.batch_size]
            quotes = await asyncio.gather(*[
                self.get_quote(ticker, asset_type or asset_type_for(ticker), currency)
                for ticker in batch
            ])

            for ticker, quote in zip(batch, quotes):
                if quote is not None:
                    results[ticker] = quote

        logger.info(f"Resolved {len(results)}/{len(unique)} quotes")
        return results

    # ============ Ranged series ============

    async def get_series(
        self,
        ticker: str,
        range_: HistoryRange,
        asset_type: AssetType,
        currency: Optional[Currency] = None,
    ) -> Optional[PriceSeries]:
        """
        Daily series for a named range from the first history-capable provider.

        With currency=None the provider's native currency is kept.
        """
        key = ("series", ticker, asset_type.value, range_.value, currency.value if currency else "native")

        if self.cache.is_failed(key):
            return None

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        for strategy in self.registry.history_capable(ticker, asset_type):
            series = await strategy.get_series(ticker, range_, currency or Currency.USD)
            if series is None or not series.points:
                continue

            if currency is not None and series.currency != currency:
                converted, _ = await self.normalizer.convert_with_rate(1.0, series.currency, currency)
                series = PriceSeries(
                    symbol=series.symbol,
                    currency=currency,
                    source=series.source,
                    points=scale_points(series.points, converted),
                )

            self.cache.put(key, series, settings.historical_cache_ttl)
            logger.info(f"{ticker} {range_.value}: {len(series.points)} bars via {series.source}")
            return series

        logger.warning(f"No provider returned a {range_.value} series for {ticker}")
        self.cache.mark_failed(key)
        return None
