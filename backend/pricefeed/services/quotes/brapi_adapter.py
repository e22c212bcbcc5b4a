"""
Brapi Data Adapters

Brapi (brapi.dev) serves B3 listings, a few international tickers and a
USD-only crypto endpoint. The token is optional for the quote API and
required for crypto.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from pricefeed.schemas.market import (
    AssetType,
    Currency,
    HistoryRange,
    PriceSeries,
    Quote,
)
from pricefeed.services.base import UpstreamMalformed
from pricefeed.services.quotes.interface import QuoteStrategy, build_points
from pricefeed.services.symbols import strip_quote_suffix

logger = logging.getLogger(__name__)


# Smallest Brapi range that reaches back to a given number of days
RANGE_BY_DAYS = [
    (5, "5d"),
    (30, "1mo"),
    (90, "3mo"),
    (180, "6mo"),
    (365, "1y"),
    (730, "2y"),
    (1825, "5y"),
]


def range_for_start(start: date, today: Optional[date] = None) -> str:
    """Pick the shortest range whose history includes ``start``."""
    today = today or datetime.now(timezone.utc).date()
    days_back = (today - start).days
    for days, name in RANGE_BY_DAYS:
        if days_back <= days:
            return name
    return "max"


def _currency(raw: Optional[str], default: Currency = Currency.BRL) -> Currency:
    try:
        return Currency((raw or "").upper())
    except ValueError:
        return default


class BrapiQuoteStrategy(QuoteStrategy):
    """Brapi /quote endpoint (stocks, ETFs, FIIs, BDRs)."""

    name = "brapi"
    priority = 10
    supports_history = True

    def can_handle(self, ticker: str, asset_type: AssetType) -> bool:
        return asset_type == AssetType.STOCK

    def _params(self, **extra) -> dict:
        params = {"fundamental": "false", **extra}
        if self.settings.brapi_token:
            params["token"] = self.settings.brapi_token
        return params

    async def _request(self, ticker: str, **extra) -> dict:
        symbol = ticker.upper().replace(".SA", "")
        data = await self._http.get_json(
            f"{self.settings.brapi_base_url}/quote/{symbol}",
            params=self._params(**extra),
        )

        results = data.get("results") or []
        if not results:
            raise UpstreamMalformed(self.name, f"No results for {symbol}")
        return results[0]

    async def _fetch_quote(
        self, ticker: str, asset_type: AssetType, currency: Currency
    ) -> Optional[Quote]:
        result = await self._request(ticker)

        price = float(result["regularMarketPrice"])
        logger.info(f"[brapi] {ticker} = {price} {result.get('currency')}")

        return Quote(
            symbol=result.get("symbol") or ticker,
            name=result.get("shortName") or result.get("longName") or ticker,
            price=price,
            change=float(result.get("regularMarketChange") or 0),
            change_percent=float(result.get("regularMarketChangePercent") or 0),
            currency=_currency(result.get("currency")),
            source=self.name,
            timestamp=datetime.now(timezone.utc),
            asset_type=asset_type,
        )

    async def _fetch_range(self, ticker: str, range_name: str) -> PriceSeries:
        result = await self._request(ticker, range=range_name, interval="1d")

        rows = result.get("historicalDataPrice") or []
        points = build_points(
            timestamps=[r.get("date") for r in rows],
            closes=[r.get("close") for r in rows],
            opens=[r.get("open") for r in rows],
            highs=[r.get("high") for r in rows],
            lows=[r.get("low") for r in rows],
            volumes=[r.get("volume") for r in rows],
        )

        return PriceSeries(
            symbol=result.get("symbol") or ticker,
            currency=_currency(result.get("currency")),
            source=self.name,
            points=points,
        )

    async def _fetch_window(
        self, ticker: str, start: date, end: date, currency: Currency
    ) -> Optional[PriceSeries]:
        series = await self._fetch_range(ticker, range_for_start(start))
        series.points = [p for p in series.points if start <= p.date.date() <= end]
        return series

    async def _fetch_series(
        self, ticker: str, range_: HistoryRange, currency: Currency
    ) -> Optional[PriceSeries]:
        return await self._fetch_range(ticker, range_.value)


class BrapiCryptoStrategy(QuoteStrategy):
    """Brapi /v2/crypto endpoint. Always quoted in USD."""

    name = "brapi-crypto"
    priority = 25
    required_credentials = ("BRAPI_TOKEN",)

    def can_handle(self, ticker: str, asset_type: AssetType) -> bool:
        return asset_type == AssetType.CRYPTO

    async def _fetch_quote(
        self, ticker: str, asset_type: AssetType, currency: Currency
    ) -> Optional[Quote]:
        coin = strip_quote_suffix(ticker)
        data = await self._http.get_json(
            f"{self.settings.brapi_base_url}/v2/crypto",
            params={"coin": coin, "currency": "USD"},
            headers={"Authorization": f"Bearer {self.settings.brapi_token}"},
        )

        coins = data.get("coins") or []
        if not coins:
            raise UpstreamMalformed(self.name, f"No data for {coin}")
        coin_data = coins[0]

        return Quote(
            symbol=coin,
            name=coin_data.get("coinName") or coin,
            price=float(coin_data["regularMarketPrice"]),
            change=float(coin_data.get("regularMarketChange") or 0),
            change_percent=float(coin_data.get("regularMarketChangePercent") or 0),
            currency=Currency.USD,
            source=self.name,
            timestamp=datetime.now(timezone.utc),
            asset_type=AssetType.CRYPTO,
        )
