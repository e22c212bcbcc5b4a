"""
Historical Resolver

Answers "what was the price of X on date D": queries a window around D
from each history-capable provider, picks the representative close and
converts it at the exchange rate of D.
"""

import logging
from datetime import date
from typing import Optional

from pricefeed.core.config import settings
from pricefeed.schemas.market import AssetType, Currency, HistoricalPrice
from pricefeed.services.cache.memory_cache import QuoteCache
from pricefeed.services.currency.normalizer import CurrencyNormalizer

logger = logging.getLogger(__name__)


class HistoricalResolver:
    """
    Resolves a closing price for a calendar date.

    Collaborators are passed in: the provider registry (history-capable
    strategies) and the quote orchestrator (live-quote substitution).
    """

    def __init__(
        self,
        registry,
        orchestrator,
        cache: QuoteCache,
        normalizer: CurrencyNormalizer,
    ):
        self.registry = registry
        self.orchestrator = orchestrator
        self.cache = cache
        self.normalizer = normalizer

    async def get_historical_price(
        self,
        ticker: str,
        target: date,
        asset_type: AssetType,
        currency: Currency = Currency.BRL,
    ) -> Optional[HistoricalPrice]:
        """
        Close for ``target`` in ``currency``.

        When no provider can serve the window, the live quote is returned
        with degraded=True. None only when the live quote fails as well.
        """
        key = ("historical", ticker, asset_type.value, target.isoformat(), currency.value)

        if self.cache.is_failed(key):
            return None

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        for strategy in self.registry.history_capable(ticker, asset_type):
            result = await strategy.get_historical_price(ticker, target, currency)
            if result is None or result.price <= 0:
                continue

            result = await self._to_currency(result, currency)
            self.cache.put(key, result, settings.historical_cache_ttl)
            logger.info(
                f"{ticker} on {target}: {result.price:.4f} {currency.value} "
                f"(bar {result.matched_date}) via {result.source}"
            )
            return result

        substitute = await self._live_substitute(ticker, target, asset_type, currency)
        if substitute is None:
            logger.warning(f"No historical or live price for {ticker} on {target}")
            self.cache.mark_failed(key)
            return None

        self.cache.put(key, substitute, settings.quote_cache_ttl)
        return substitute

    async def _to_currency(self, result: HistoricalPrice, currency: Currency) -> HistoricalPrice:
        if result.currency == currency:
            return result

        price, rate = await self.normalizer.convert_with_rate(
            result.price, result.currency, currency, as_of=result.matched_date or result.date
        )
        return result.model_copy(update={
            "price": price,
            "currency": currency,
            "degraded": result.degraded or bool(rate and rate.degraded),
        })

    async def _live_substitute(
        self,
        ticker: str,
        target: date,
        asset_type: AssetType,
        currency: Currency,
    ) -> Optional[HistoricalPrice]:
        quote = await self.orchestrator.get_quote(ticker, asset_type, currency)
        if quote is None:
            return None

        logger.warning(f"No history for {ticker} around {target}, using live price")
        return HistoricalPrice(
            symbol=ticker,
            date=target,
            price=quote.price,
            currency=quote.currency,
            source=quote.source,
            matched_date=None,
            degraded=True,
        )
