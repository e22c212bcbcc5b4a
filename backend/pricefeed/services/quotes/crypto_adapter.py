"""
CoinGecko Data Adapter

Keyless crypto prices. Quotes and history are requested directly in the
target currency (brl/usd), so no conversion is needed downstream.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from pricefeed.schemas.market import (
    RANGE_DAYS,
    AssetType,
    Currency,
    HistoricalPrice,
    HistoricalPricePoint,
    HistoryRange,
    PriceSeries,
    Quote,
)
from pricefeed.services.base import UpstreamMalformed
from pricefeed.services.quotes.interface import STRATEGY_ERRORS, QuoteStrategy
from pricefeed.services.symbols import coingecko_id, strip_quote_suffix

logger = logging.getLogger(__name__)


def _daily_points(prices: list, volumes: Optional[list] = None) -> list[HistoricalPricePoint]:
    """
    Collapse [[epoch_ms, value], ...] samples into one bar per UTC day.

    The last sample of a day is its close; open/high/low come from the
    samples seen that day.
    """
    volume_by_day: dict[date, float] = {}
    for ts, volume in volumes or []:
        if volume is not None:
            day = datetime.fromtimestamp(ts / 1000, tz=timezone.utc).date()
            volume_by_day[day] = float(volume)

    days: dict[date, list[float]] = {}
    for ts, price in prices:
        if price is None or price <= 0:
            continue
        day = datetime.fromtimestamp(ts / 1000, tz=timezone.utc).date()
        days.setdefault(day, []).append(float(price))

    return [
        HistoricalPricePoint(
            date=datetime.combine(day, time.min, tzinfo=timezone.utc),
            open=samples[0],
            high=max(samples),
            low=min(samples),
            close=samples[-1],
            volume=volume_by_day.get(day, 0.0),
        )
        for day, samples in sorted(days.items())
    ]


class CoinGeckoStrategy(QuoteStrategy):
    """CoinGecko simple/price + market_chart (+ /history as a last resort)."""

    name = "coingecko"
    priority = 15
    supports_history = True

    def can_handle(self, ticker: str, asset_type: AssetType) -> bool:
        return asset_type == AssetType.CRYPTO

    async def _fetch_quote(
        self, ticker: str, asset_type: AssetType, currency: Currency
    ) -> Optional[Quote]:
        coin_id = coingecko_id(ticker)
        vs = currency.value.lower()

        data = await self._http.get_json(
            f"{self.settings.coingecko_base_url}/simple/price",
            params={
                "ids": coin_id,
                "vs_currencies": vs,
                "include_24hr_change": "true",
            },
        )

        coin = data.get(coin_id)
        if not isinstance(coin, dict) or coin.get(vs) is None:
            raise UpstreamMalformed(self.name, f"No {vs} price for {coin_id}")

        price = float(coin[vs])
        change_percent = float(coin.get(f"{vs}_24h_change") or 0)
        # Absolute change derived from the 24h percentage
        change = price - price / (1 + change_percent / 100) if change_percent > -100 else 0.0

        logger.info(f"[coingecko] {coin_id} = {price} {vs}")

        return Quote(
            symbol=strip_quote_suffix(ticker),
            name=coin_id.replace("-", " ").title(),
            price=price,
            change=change,
            change_percent=change_percent,
            currency=currency,
            source=self.name,
            timestamp=datetime.now(timezone.utc),
            asset_type=AssetType.CRYPTO,
        )

    async def _fetch_window(
        self, ticker: str, start: date, end: date, currency: Currency
    ) -> Optional[PriceSeries]:
        coin_id = coingecko_id(ticker)
        start_ts = datetime.combine(start, time.min, tzinfo=timezone.utc)
        end_ts = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)

        data = await self._http.get_json(
            f"{self.settings.coingecko_base_url}/coins/{coin_id}/market_chart/range",
            params={
                "vs_currency": currency.value.lower(),
                "from": int(start_ts.timestamp()),
                "to": int(end_ts.timestamp()),
            },
        )

        return PriceSeries(
            symbol=strip_quote_suffix(ticker),
            currency=currency,
            source=self.name,
            points=_daily_points(data.get("prices") or [], data.get("total_volumes")),
        )

    async def _fetch_series(
        self, ticker: str, range_: HistoryRange, currency: Currency
    ) -> Optional[PriceSeries]:
        coin_id = coingecko_id(ticker)

        data = await self._http.get_json(
            f"{self.settings.coingecko_base_url}/coins/{coin_id}/market_chart",
            params={
                "vs_currency": currency.value.lower(),
                "days": RANGE_DAYS[range_],
                "interval": "daily",
            },
        )

        return PriceSeries(
            symbol=strip_quote_suffix(ticker),
            currency=currency,
            source=self.name,
            points=_daily_points(data.get("prices") or [], data.get("total_volumes")),
        )

    async def _fetch_snapshot(
        self, ticker: str, target: date, currency: Currency
    ) -> Optional[HistoricalPrice]:
        """/coins/{id}/history returns the price at 00:00 UTC of a date."""
        coin_id = coingecko_id(ticker)
        vs = currency.value.lower()

        data = await self._http.get_json(
            f"{self.settings.coingecko_base_url}/coins/{coin_id}/history",
            params={"date": target.strftime("%d-%m-%Y"), "localization": "false"},
        )

        price = ((data.get("market_data") or {}).get("current_price") or {}).get(vs)
        if not price or price <= 0:
            raise UpstreamMalformed(self.name, f"No {vs} history for {coin_id} on {target}")

        return HistoricalPrice(
            symbol=strip_quote_suffix(ticker),
            date=target,
            price=float(price),
            currency=currency,
            source=self.name,
            matched_date=target,
        )

    async def get_historical_price(
        self, ticker: str, target: date, currency: Currency
    ) -> Optional[HistoricalPrice]:
        result = await super().get_historical_price(ticker, target, currency)
        if result is not None:
            return result

        try:
            return await asyncio.wait_for(
                self._fetch_snapshot(ticker, target, currency),
                timeout=self.history_timeout,
            )
        except STRATEGY_ERRORS as e:
            logger.debug(f"[coingecko] history {ticker} {target} failed: {e!r}")
            return None
