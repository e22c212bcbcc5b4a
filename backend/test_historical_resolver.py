import asyncio
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from pricefeed.schemas.market import (
    AssetType,
    Currency,
    ExchangeRate,
    HistoricalPricePoint,
    PriceSeries,
    Quote,
)
from pricefeed.services.cache import QuoteCache
from pricefeed.services.historical import HistoricalResolver, select_close, window_bounds
from pricefeed.services.quotes.interface import QuoteStrategy
from pricefeed.services.quotes.registry import ProviderRegistry


def _bar(day: date, close: float, hour: int = 13) -> HistoricalPricePoint:
    return HistoricalPricePoint(
        date=datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc),
        close=close,
    )


class WindowStrategy(QuoteStrategy):
    supports_history = True

    def __init__(self, name, priority, points=None, currency=Currency.BRL):
        super().__init__(http=MagicMock())
        self.name = name
        self.priority = priority
        self.points = points
        self.native = currency
        self.windows = []

    def can_handle(self, ticker, asset_type):
        return asset_type == AssetType.STOCK

    async def _fetch_quote(self, ticker, asset_type, currency):
        return None

    async def _fetch_window(self, ticker, start, end, currency):
        self.windows.append((start, end))
        if self.points is None:
            return None
        return PriceSeries(symbol=ticker, currency=self.native, source=self.name, points=self.points)


def _resolver(strategies, live_quote=None, rate=5.0):
    orchestrator = MagicMock()
    orchestrator.get_quote = AsyncMock(return_value=live_quote)

    async def convert_with_rate(price, from_currency, to_currency, as_of=None):
        used = ExchangeRate(rate=rate, as_of=as_of or date.today(), source="test")
        return (price * rate if from_currency == Currency.USD else price / rate), used

    normalizer = MagicMock()
    normalizer.convert_with_rate = AsyncMock(side_effect=convert_with_rate)

    resolver = HistoricalResolver(ProviderRegistry(strategies), orchestrator, QuoteCache(), normalizer)
    return resolver, orchestrator, normalizer


# ============ Window selection ============


def test_window_spans_seven_days_back_three_forward() -> None:
    start, end = window_bounds(date(2024, 3, 16))
    assert start == date(2024, 3, 9)
    assert end == date(2024, 3, 19)


def test_exact_day_wins() -> None:
    points = [_bar(date(2024, 3, 14), 10), _bar(date(2024, 3, 15), 11), _bar(date(2024, 3, 18), 12)]
    assert select_close(points, date(2024, 3, 15)).close == 11


def test_weekend_resolves_to_previous_trading_day() -> None:
    # Saturday 2024-03-16 -> Friday's close
    points = [_bar(date(2024, 3, 14), 10), _bar(date(2024, 3, 15), 11), _bar(date(2024, 3, 18), 12)]
    assert select_close(points, date(2024, 3, 16)).close == 11


def test_next_trading_day_when_nothing_before() -> None:
    points = [_bar(date(2024, 3, 18), 12), _bar(date(2024, 3, 19), 13)]
    assert select_close(points, date(2024, 3, 16)).close == 12


def test_day_comparison_uses_utc() -> None:
    # 22:00 on the 15th in UTC-3 is 01:00 on the 16th in UTC
    local = timezone(timedelta(hours=-3))
    late = HistoricalPricePoint(date=datetime(2024, 3, 15, 22, tzinfo=local), close=20)
    earlier = _bar(date(2024, 3, 14), 5)

    assert select_close([earlier, late], date(2024, 3, 16)).close == 20
    assert select_close([earlier, late], date(2024, 3, 15)).close == 5


def test_empty_window_selects_nothing() -> None:
    assert select_close([], date(2024, 3, 16)) is None


# ============ Resolver ============


def test_historical_price_from_window() -> None:
    strategy = WindowStrategy("chart", 10, points=[_bar(date(2024, 3, 15), 38.2)])
    resolver, orchestrator, _ = _resolver([strategy])

    result = asyncio.run(resolver.get_historical_price("PETR4", date(2024, 3, 16), AssetType.STOCK, Currency.BRL))

    assert result.price == 38.2
    assert result.matched_date == date(2024, 3, 15)
    assert not result.degraded
    assert strategy.windows == [(date(2024, 3, 9), date(2024, 3, 19))]
    orchestrator.get_quote.assert_not_awaited()


def test_next_strategy_tried_when_window_empty() -> None:
    empty = WindowStrategy("empty", 10, points=[])
    good = WindowStrategy("good", 20, points=[_bar(date(2024, 3, 15), 7.0)])
    resolver, _, _ = _resolver([empty, good])

    result = asyncio.run(resolver.get_historical_price("VALE3", date(2024, 3, 15), AssetType.STOCK, Currency.BRL))

    assert result.source == "good"


def test_converted_at_rate_of_matched_trading_day() -> None:
    strategy = WindowStrategy("us", 10, points=[_bar(date(2024, 3, 15), 100.0)], currency=Currency.USD)
    resolver, _, normalizer = _resolver([strategy], rate=5.0)

    # Saturday resolves to Friday's close, converted at Friday's rate
    result = asyncio.run(resolver.get_historical_price("AAPL", date(2024, 3, 16), AssetType.STOCK, Currency.BRL))

    assert result.price == pytest.approx(500.0)
    assert result.currency == Currency.BRL
    assert result.date == date(2024, 3, 16)
    assert normalizer.convert_with_rate.await_args.kwargs["as_of"] == date(2024, 3, 15)


def test_live_quote_substitutes_when_no_history() -> None:
    live = Quote(
        symbol="PETR4",
        name="Petrobras",
        price=37.0,
        currency=Currency.BRL,
        source="brapi",
        timestamp=datetime.now(timezone.utc),
        asset_type=AssetType.STOCK,
    )
    strategy = WindowStrategy("down", 10, points=None)
    resolver, _, _ = _resolver([strategy], live_quote=live)

    result = asyncio.run(resolver.get_historical_price("PETR4", date(2024, 3, 15), AssetType.STOCK, Currency.BRL))

    assert result.price == 37.0
    assert result.degraded
    assert result.matched_date is None


def test_total_failure_is_negative_cached() -> None:
    strategy = WindowStrategy("down", 10, points=None)
    resolver, orchestrator, _ = _resolver([strategy], live_quote=None)

    async def _run():
        first = await resolver.get_historical_price("XPTO3", date(2024, 3, 15), AssetType.STOCK, Currency.BRL)
        second = await resolver.get_historical_price("XPTO3", date(2024, 3, 15), AssetType.STOCK, Currency.BRL)
        return first, second

    first, second = asyncio.run(_run())

    assert first is None and second is None
    assert len(strategy.windows) == 1
    assert orchestrator.get_quote.await_count == 1
