"""
US Stocks Data Adapters

Keyed providers for US listings (stocks, ETFs, REITs): Finnhub, Twelve Data
and Alpha Vantage. All of them quote in USD. Each is registered only when
its API key is configured.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from pricefeed.schemas.market import (
    AssetType,
    Currency,
    HistoricalPricePoint,
    MarketClass,
    PriceSeries,
    Quote,
)
from pricefeed.services.base import UpstreamMalformed
from pricefeed.services.quotes.interface import QuoteStrategy
from pricefeed.services.symbols import classify

logger = logging.getLogger(__name__)


def _parse_day(raw: str) -> datetime:
    """'2024-03-15' or '2024-03-15 16:00:00' -> midnight UTC of that day."""
    day = date.fromisoformat(raw[:10])
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


class USStockStrategy(QuoteStrategy):
    """Common routing for US-only providers."""

    def can_handle(self, ticker: str, asset_type: AssetType) -> bool:
        # B3 tickers never trade on US exchanges
        return asset_type == AssetType.STOCK and classify(ticker) != MarketClass.BR_STOCK

    def _quote(
        self,
        ticker: str,
        price: float,
        change: float,
        change_percent: float,
        name: Optional[str] = None,
    ) -> Quote:
        logger.info(f"[{self.name}] {ticker} = {price} USD")
        return Quote(
            symbol=ticker,
            name=name or ticker,
            price=price,
            change=change,
            change_percent=change_percent,
            currency=Currency.USD,
            source=self.name,
            timestamp=datetime.now(timezone.utc),
            asset_type=AssetType.STOCK,
        )


class FinnhubStrategy(USStockStrategy):
    """Finnhub /quote. No history on the free tier."""

    name = "finnhub"
    priority = 30
    required_credentials = ("FINNHUB_API_KEY",)

    async def _fetch_quote(
        self, ticker: str, asset_type: AssetType, currency: Currency
    ) -> Optional[Quote]:
        data = await self._http.get_json(
            f"{self.settings.finnhub_base_url}/quote",
            params={"symbol": ticker, "token": self.settings.finnhub_api_key},
        )

        # Unknown symbols come back as all-zero payloads
        price = float(data.get("c") or 0)
        if price <= 0:
            raise UpstreamMalformed(self.name, f"No price for {ticker}")

        return self._quote(
            ticker,
            price=price,
            change=float(data.get("d") or 0),
            change_percent=float(data.get("dp") or 0),
        )


class TwelveDataStrategy(USStockStrategy):
    """Twelve Data /quote and /time_series."""

    name = "twelvedata"
    priority = 40
    required_credentials = ("TWELVE_DATA_KEY",)
    supports_history = True

    async def _get(self, endpoint: str, **params) -> dict:
        data = await self._http.get_json(
            f"{self.settings.twelve_data_base_url}/{endpoint}",
            params={**params, "apikey": self.settings.twelve_data_key},
        )
        # Errors are reported in-band with HTTP 200
        if data.get("status") == "error":
            raise UpstreamMalformed(self.name, data.get("message", "error status"))
        return data

    async def _fetch_quote(
        self, ticker: str, asset_type: AssetType, currency: Currency
    ) -> Optional[Quote]:
        data = await self._get("quote", symbol=ticker)

        return self._quote(
            ticker,
            price=float(data["close"]),
            change=float(data.get("change") or 0),
            change_percent=float(data.get("percent_change") or 0),
            name=data.get("name"),
        )

    async def _fetch_window(
        self, ticker: str, start: date, end: date, currency: Currency
    ) -> Optional[PriceSeries]:
        data = await self._get(
            "time_series",
            symbol=ticker,
            interval="1day",
            start_date=start.isoformat(),
            end_date=end.isoformat(),
        )

        points = [
            HistoricalPricePoint(
                date=_parse_day(row["datetime"]),
                open=float(row.get("open") or 0),
                high=float(row.get("high") or 0),
                low=float(row.get("low") or 0),
                close=float(row["close"]),
                volume=float(row.get("volume") or 0),
            )
            for row in data.get("values") or []
            if float(row.get("close") or 0) > 0
        ]
        points.sort(key=lambda p: p.date)

        return PriceSeries(symbol=ticker, currency=Currency.USD, source=self.name, points=points)


class AlphaVantageStrategy(USStockStrategy):
    """Alpha Vantage GLOBAL_QUOTE and TIME_SERIES_DAILY."""

    name = "alphavantage"
    priority = 50
    required_credentials = ("ALPHA_VANTAGE_KEY",)
    supports_history = True

    async def _query(self, function: str, **params) -> dict:
        data = await self._http.get_json(
            self.settings.alpha_vantage_base_url,
            params={"function": function, **params, "apikey": self.settings.alpha_vantage_key},
        )
        # Rate limiting and bad symbols come back as 200 with a message
        for field in ("Note", "Information", "Error Message"):
            if field in data:
                raise UpstreamMalformed(self.name, str(data[field]))
        return data

    async def _fetch_quote(
        self, ticker: str, asset_type: AssetType, currency: Currency
    ) -> Optional[Quote]:
        data = await self._query("GLOBAL_QUOTE", symbol=ticker)

        quote = data.get("Global Quote") or {}
        if not quote:
            raise UpstreamMalformed(self.name, f"Empty quote for {ticker}")

        return self._quote(
            ticker,
            price=float(quote["05. price"]),
            change=float(quote.get("09. change") or 0),
            change_percent=float(str(quote.get("10. change percent") or "0").rstrip("%")),
        )

    async def _fetch_window(
        self, ticker: str, start: date, end: date, currency: Currency
    ) -> Optional[PriceSeries]:
        # compact covers the last ~100 trading days
        days_back = (datetime.now(timezone.utc).date() - start).days
        outputsize = "compact" if days_back <= 140 else "full"

        data = await self._query("TIME_SERIES_DAILY", symbol=ticker, outputsize=outputsize)
        rows = data.get("Time Series (Daily)") or {}

        points = []
        for raw_day, bar in rows.items():
            day = date.fromisoformat(raw_day)
            close = float(bar["4. close"])
            if not (start <= day <= end) or close <= 0:
                continue
            points.append(HistoricalPricePoint(
                date=_parse_day(raw_day),
                open=float(bar.get("1. open") or 0),
                high=float(bar.get("2. high") or 0),
                low=float(bar.get("3. low") or 0),
                close=close,
                volume=float(bar.get("5. volume") or 0),
            ))
        points.sort(key=lambda p: p.date)

        return PriceSeries(symbol=ticker, currency=Currency.USD, source=self.name, points=points)
