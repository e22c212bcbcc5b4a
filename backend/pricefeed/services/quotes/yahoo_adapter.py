"""
Yahoo Finance Chart Adapter

Keyless access to Yahoo's v8 chart API. B3 listings use the .SA suffix;
tickers of unknown market are tried as US listings first, then on B3.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from pricefeed.schemas.market import (
    AssetType,
    Currency,
    HistoryRange,
    PriceSeries,
    Quote,
)
from pricefeed.services.base import UpstreamMalformed
from pricefeed.services.quotes.interface import STRATEGY_ERRORS, QuoteStrategy, build_points
from pricefeed.services.symbols import yahoo_symbols

logger = logging.getLogger(__name__)


def _chart_result(data: dict, symbol: str) -> dict:
    chart = data.get("chart") or {}
    results = chart.get("result") or []
    if not results:
        error = chart.get("error") or {}
        raise UpstreamMalformed("yahoo", f"No chart for {symbol}: {error.get('description', 'empty result')}")
    return results[0]


def _currency(meta: dict, symbol: str) -> Currency:
    raw = (meta.get("currency") or "").upper()
    if raw in ("USD", "BRL"):
        return Currency(raw)
    return Currency.BRL if symbol.endswith(".SA") else Currency.USD


def _epoch(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp())


class YahooChartStrategy(QuoteStrategy):
    """Yahoo Finance chart API (stocks, ETFs, REITs, BDRs)."""

    name = "yahoo"
    priority = 20
    supports_history = True

    def can_handle(self, ticker: str, asset_type: AssetType) -> bool:
        return asset_type == AssetType.STOCK

    async def _chart(self, symbol: str, params: dict) -> dict:
        data = await self._http.get_json(
            f"{self.settings.yahoo_chart_url}/{symbol}",
            params={"interval": "1d", **params},
        )
        return _chart_result(data, symbol)

    async def _first_chart(self, ticker: str, params: dict) -> tuple[str, dict]:
        """Try each candidate Yahoo symbol until one answers."""
        last_error: Optional[Exception] = None
        for symbol in yahoo_symbols(ticker):
            try:
                return symbol, await self._chart(symbol, params)
            except STRATEGY_ERRORS as e:
                logger.debug(f"[yahoo] {symbol} failed: {e}")
                last_error = e
        raise UpstreamMalformed(self.name, f"No Yahoo listing for {ticker}: {last_error}")

    async def _fetch_quote(
        self, ticker: str, asset_type: AssetType, currency: Currency
    ) -> Optional[Quote]:
        symbol, result = await self._first_chart(ticker, {"range": "1d"})
        meta = result.get("meta") or {}

        price = float(meta["regularMarketPrice"])
        previous = meta.get("chartPreviousClose") or meta.get("previousClose")
        change = price - float(previous) if previous else 0.0
        change_percent = change / float(previous) * 100 if previous else 0.0

        logger.info(f"[yahoo] {symbol} = {price} {meta.get('currency')}")

        return Quote(
            symbol=ticker,
            name=meta.get("shortName") or meta.get("longName") or ticker,
            price=price,
            change=change,
            change_percent=change_percent,
            currency=_currency(meta, symbol),
            source=self.name,
            timestamp=datetime.now(timezone.utc),
            asset_type=asset_type,
        )

    def _to_series(self, ticker: str, symbol: str, result: dict) -> PriceSeries:
        quote = ((result.get("indicators") or {}).get("quote") or [{}])[0]
        points = build_points(
            timestamps=result.get("timestamp") or [],
            closes=quote.get("close") or [],
            opens=quote.get("open"),
            highs=quote.get("high"),
            lows=quote.get("low"),
            volumes=quote.get("volume"),
        )
        return PriceSeries(
            symbol=ticker,
            currency=_currency(result.get("meta") or {}, symbol),
            source=self.name,
            points=points,
        )

    async def _fetch_window(
        self, ticker: str, start: date, end: date, currency: Currency
    ) -> Optional[PriceSeries]:
        symbol, result = await self._first_chart(ticker, {
            "period1": _epoch(start),
            "period2": _epoch(end + timedelta(days=1)),
        })
        return self._to_series(ticker, symbol, result)

    async def _fetch_series(
        self, ticker: str, range_: HistoryRange, currency: Currency
    ) -> Optional[PriceSeries]:
        symbol, result = await self._first_chart(ticker, {"range": range_.value})
        return self._to_series(ticker, symbol, result)
