"""
yfinance Data Adapter

Last-resort stock provider built on the yfinance library. yfinance is
blocking, so every call runs in a worker thread bounded by the strategy
timeout.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import yfinance as yf

from pricefeed.schemas.market import (
    AssetType,
    Currency,
    HistoricalPricePoint,
    HistoryRange,
    PriceSeries,
    Quote,
)
from pricefeed.services.base import UpstreamMalformed, UpstreamUnavailable
from pricefeed.services.quotes.interface import QuoteStrategy
from pricefeed.services.symbols import yahoo_symbols

logger = logging.getLogger(__name__)


def _currency_for(symbol: str) -> Currency:
    return Currency.BRL if symbol.endswith(".SA") else Currency.USD


def _history_points(hist) -> list[HistoricalPricePoint]:
    """Convert a yfinance history DataFrame to ascending bars."""
    points = []
    for idx, row in hist.iterrows():
        ts = idx.to_pydatetime()

        # Make timezone aware if not already
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)

        close = float(row["Close"])
        if not close > 0:
            continue

        points.append(HistoricalPricePoint(
            date=datetime(ts.year, ts.month, ts.day, tzinfo=timezone.utc),
            open=float(row["Open"]) if row["Open"] == row["Open"] else 0.0,
            high=float(row["High"]) if row["High"] == row["High"] else 0.0,
            low=float(row["Low"]) if row["Low"] == row["Low"] else 0.0,
            close=close,
            volume=float(row["Volume"]) if row["Volume"] == row["Volume"] else 0.0,
        ))
    return points


class YFinanceStrategy(QuoteStrategy):
    """yfinance Ticker.history for quotes and windows."""

    name = "yfinance"
    priority = 60
    supports_history = True

    def can_handle(self, ticker: str, asset_type: AssetType) -> bool:
        return asset_type == AssetType.STOCK

    def _history_sync(self, ticker: str, **kwargs) -> tuple[str, list[HistoricalPricePoint]]:
        """Blocking: first candidate symbol with a non-empty history wins."""
        for symbol in yahoo_symbols(ticker):
            try:
                hist = yf.Ticker(symbol).history(interval="1d", **kwargs)
            except Exception as e:
                raise UpstreamUnavailable(self.name, f"yfinance failed for {symbol}: {e}") from e

            if hist is not None and not hist.empty:
                points = _history_points(hist)
                if points:
                    return symbol, points

            logger.debug(f"[yfinance] No data returned for {symbol}")

        raise UpstreamMalformed(self.name, f"No yfinance history for {ticker}")

    async def _history(self, ticker: str, **kwargs) -> tuple[str, list[HistoricalPricePoint]]:
        return await asyncio.to_thread(self._history_sync, ticker, **kwargs)

    async def _fetch_quote(
        self, ticker: str, asset_type: AssetType, currency: Currency
    ) -> Optional[Quote]:
        symbol, points = await self._history(ticker, period="5d")

        current = points[-1].close
        previous = points[-2].close if len(points) > 1 else current
        change = current - previous

        logger.info(f"[yfinance] {symbol} = {current}")

        return Quote(
            symbol=ticker,
            name=ticker,
            price=current,
            change=change,
            change_percent=(change / previous * 100) if previous > 0 else 0.0,
            currency=_currency_for(symbol),
            source=self.name,
            timestamp=datetime.now(timezone.utc),
            asset_type=AssetType.STOCK,
        )

    async def _fetch_window(
        self, ticker: str, start: date, end: date, currency: Currency
    ) -> Optional[PriceSeries]:
        # yfinance treats end as exclusive
        symbol, points = await self._history(
            ticker,
            start=start.isoformat(),
            end=(end + timedelta(days=1)).isoformat(),
        )
        return PriceSeries(symbol=ticker, currency=_currency_for(symbol), source=self.name, points=points)

    async def _fetch_series(
        self, ticker: str, range_: HistoryRange, currency: Currency
    ) -> Optional[PriceSeries]:
        symbol, points = await self._history(ticker, period=range_.value)
        return PriceSeries(symbol=ticker, currency=_currency_for(symbol), source=self.name, points=points)
