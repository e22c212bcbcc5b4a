"""
Currency Normalizer

USD <-> BRL conversion backed by a chain of exchange-rate sources:
Frankfurter (historical by date), AwesomeAPI (latest bid), then a static
fallback rate marked as degraded.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from pricefeed.core.config import settings
from pricefeed.schemas.market import Currency, ExchangeRate
from pricefeed.services.base import (
    ConversionDegraded,
    ExternalAPIError,
    UnsupportedCurrencyPair,
)
from pricefeed.services.cache.memory_cache import QuoteCache, get_quote_cache
from pricefeed.services.http_client import HttpClient, get_http_client

logger = logging.getLogger(__name__)


class CurrencyNormalizer:
    """Resolves USD/BRL rates and converts prices between the two."""

    SERVICE_NAME = "CurrencyNormalizer"

    def __init__(
        self,
        http: Optional[HttpClient] = None,
        cache: Optional[QuoteCache] = None,
        fallback_rate: Optional[float] = None,
    ):
        self._http = http or get_http_client()
        self._cache = cache or get_quote_cache()
        self._fallback_rate = fallback_rate or settings.fallback_usd_brl_rate
        self._timeout = settings.exchange_rate_timeout

    @staticmethod
    def _cache_key(as_of: Optional[date]) -> tuple:
        return ("fx", "USD", "BRL", as_of.isoformat() if as_of else "latest")

    async def get_usd_to_brl(self, as_of: Optional[date] = None) -> ExchangeRate:
        """
        Get the USD -> BRL rate, optionally as of a past date.

        Never raises: when every source fails the static fallback rate is
        returned with degraded=True.
        """
        key = self._cache_key(as_of)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if not self._cache.is_failed(key):
            for fetch in (self._fetch_frankfurter, self._fetch_awesomeapi):
                try:
                    rate = await fetch(as_of)
                except (ExternalAPIError, AttributeError, KeyError, TypeError, ValueError) as e:
                    logger.debug(f"{fetch.__name__} failed: {e}")
                    continue

                self._cache.put(key, rate, settings.exchange_rate_cache_ttl)
                return rate

            self._cache.mark_failed(key)

        warning = ConversionDegraded(
            self.SERVICE_NAME,
            f"No exchange-rate source answered, using fallback {self._fallback_rate}",
            {"as_of": str(as_of) if as_of else "latest"},
        )
        logger.warning(str(warning))

        return ExchangeRate(
            rate=self._fallback_rate,
            as_of=as_of or datetime.now(timezone.utc).date(),
            source="fallback",
            degraded=True,
        )

    async def _fetch_frankfurter(self, as_of: Optional[date]) -> ExchangeRate:
        path = as_of.isoformat() if as_of else "latest"
        data = await self._http.get_json(
            f"{settings.frankfurter_base_url}/{path}",
            params={"from": "USD", "to": "BRL"},
            timeout=self._timeout,
        )

        rate = float(data["rates"]["BRL"])
        rate_date = date.fromisoformat(data["date"]) if data.get("date") else (as_of or date.today())

        logger.info(f"USD/BRL {rate} from Frankfurter ({rate_date})")
        return ExchangeRate(rate=rate, as_of=rate_date, source="frankfurter")

    async def _fetch_awesomeapi(self, as_of: Optional[date]) -> ExchangeRate:
        # Latest only; used for historical dates too when Frankfurter is down
        data = await self._http.get_json(
            f"{settings.awesomeapi_base_url}/last/USD-BRL",
            timeout=self._timeout,
        )

        rate = float(data["USDBRL"]["bid"])

        logger.info(f"USD/BRL {rate} from AwesomeAPI")
        return ExchangeRate(
            rate=rate,
            as_of=as_of or datetime.now(timezone.utc).date(),
            source="awesomeapi",
        )

    async def convert_with_rate(
        self,
        price: float,
        from_currency: Currency,
        to_currency: Currency,
        as_of: Optional[date] = None,
    ) -> tuple[float, Optional[ExchangeRate]]:
        """Convert a price and return the rate used (None when no conversion)."""
        source = _code(from_currency)
        target = _code(to_currency)

        if source == target:
            return price, None

        if {source, target} != {"USD", "BRL"}:
            raise UnsupportedCurrencyPair(
                self.SERVICE_NAME,
                f"Cannot convert {source} to {target}",
            )

        rate = await self.get_usd_to_brl(as_of)
        if source == "USD":
            return price * rate.rate, rate
        return price / rate.rate, rate

    async def convert(
        self,
        price: float,
        from_currency: Currency,
        to_currency: Currency,
        as_of: Optional[date] = None,
    ) -> float:
        """Convert a price between USD and BRL (no-op for equal currencies)."""
        converted, _ = await self.convert_with_rate(price, from_currency, to_currency, as_of)
        return converted


def _code(currency) -> str:
    """ISO code for a Currency member or a plain string."""
    return str(getattr(currency, "value", currency)).upper()


# Singleton instance
_normalizer: Optional[CurrencyNormalizer] = None


def get_currency_normalizer() -> CurrencyNormalizer:
    """Get or create the currency normalizer instance."""
    global _normalizer
    if _normalizer is None:
        _normalizer = CurrencyNormalizer()
    return _normalizer
