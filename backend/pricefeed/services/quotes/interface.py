"""
Quote Service Interfaces

Defines the contract every market-data provider adapter implements and
the contract of the market data facade built on top of them.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import aiohttp

from pricefeed.core.config import Settings, settings as default_settings
from pricefeed.schemas.market import (
    RANGE_DAYS,
    AssetType,
    Currency,
    HistoricalPrice,
    HistoricalPricePoint,
    HistoryRange,
    PriceSeries,
    ProviderDescriptor,
    Quote,
    QuoteRequest,
)
from pricefeed.services.base import BaseService, UpstreamMalformed, UpstreamUnavailable
from pricefeed.services.historical.window import select_close, utc_day, window_bounds
from pricefeed.services.http_client import HttpClient

logger = logging.getLogger(__name__)

# Everything a provider call may raise that means "this provider has no answer"
STRATEGY_ERRORS = (
    UpstreamUnavailable,
    UpstreamMalformed,
    asyncio.TimeoutError,
    aiohttp.ClientError,
    AttributeError,
    KeyError,
    IndexError,
    OverflowError,
    TypeError,
    ValueError,
)


class QuoteStrategy(ABC):
    """
    Quote Strategy Contract.

    INPUT: ticker (canonical, alias-resolved) + asset type + currency
    OUTPUT: Quote / HistoricalPrice / PriceSeries in the provider's
            native currency, or None

    Public methods never raise: upstream failures, timeouts and malformed
    payloads are logged and reported as None. Subclasses implement the
    ``_fetch_*`` hooks and are free to raise from them.
    """

    name: str = "base"
    priority: int = 100
    required_credentials: tuple[str, ...] = ()
    supports_history: bool = False

    def __init__(self, http: HttpClient, settings: Optional[Settings] = None):
        self._http = http
        self.settings = settings or default_settings
        self.timeout = self.settings.quote_timeout
        self.history_timeout = self.settings.history_timeout

    # ============ Registration ============

    def is_available(self) -> bool:
        """True when every required credential is configured."""
        return all(self._credential(name) for name in self.required_credentials)

    def _credential(self, env_name: str) -> Optional[str]:
        return getattr(self.settings, env_name.lower(), None)

    @abstractmethod
    def can_handle(self, ticker: str, asset_type: AssetType) -> bool:
        """Whether this provider may be asked about the ticker."""
        pass

    def describe(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            name=self.name,
            priority=self.priority,
            available=self.is_available(),
            supports_history=self.supports_history,
            required_credentials=list(self.required_credentials),
        )

    # ============ Provider hooks ============

    @abstractmethod
    async def _fetch_quote(
        self, ticker: str, asset_type: AssetType, currency: Currency
    ) -> Optional[Quote]:
        pass

    async def _fetch_window(
        self, ticker: str, start: date, end: date, currency: Currency
    ) -> Optional[PriceSeries]:
        return None

    async def _fetch_series(
        self, ticker: str, range_: HistoryRange, currency: Currency
    ) -> Optional[PriceSeries]:
        """Default: a window ending today covering the range."""
        end = datetime.now(timezone.utc).date()
        start = end - timedelta(days=RANGE_DAYS[range_])
        return await self._fetch_window(ticker, start, end, currency)

    # ============ Public contract ============

    async def get_quote(
        self, ticker: str, asset_type: AssetType, currency: Currency
    ) -> Optional[Quote]:
        """Live quote in the provider's native currency, or None."""
        try:
            quote = await asyncio.wait_for(
                self._fetch_quote(ticker, asset_type, currency),
                timeout=self.timeout,
            )
        except STRATEGY_ERRORS as e:
            logger.debug(f"[{self.name}] quote {ticker} failed: {e!r}")
            return None

        if quote is None or quote.price <= 0:
            return None
        return quote

    async def get_price_window(
        self, ticker: str, start: date, end: date, currency: Currency
    ) -> Optional[PriceSeries]:
        """Daily bars between start and end (inclusive), or None."""
        if not self.supports_history:
            return None

        try:
            series = await asyncio.wait_for(
                self._fetch_window(ticker, start, end, currency),
                timeout=self.history_timeout,
            )
        except STRATEGY_ERRORS as e:
            logger.debug(f"[{self.name}] window {ticker} {start}..{end} failed: {e!r}")
            return None

        return _non_empty(series)

    async def get_series(
        self, ticker: str, range_: HistoryRange, currency: Currency
    ) -> Optional[PriceSeries]:
        """Daily bars covering a named range, or None."""
        if not self.supports_history:
            return None

        try:
            series = await asyncio.wait_for(
                self._fetch_series(ticker, range_, currency),
                timeout=self.history_timeout,
            )
        except STRATEGY_ERRORS as e:
            logger.debug(f"[{self.name}] series {ticker} {range_.value} failed: {e!r}")
            return None

        return _non_empty(series)

    async def get_historical_price(
        self, ticker: str, target: date, currency: Currency
    ) -> Optional[HistoricalPrice]:
        """Close representing the target date, chosen from a window around it."""
        start, end = window_bounds(target)
        series = await self.get_price_window(ticker, start, end, currency)
        if series is None:
            return None

        point = select_close(series.points, target)
        if point is None:
            return None

        return HistoricalPrice(
            symbol=ticker,
            date=target,
            price=point.close,
            currency=series.currency,
            source=self.name,
            matched_date=utc_day(point.date),
        )


def _non_empty(series: Optional[PriceSeries]) -> Optional[PriceSeries]:
    if series is None or not series.points:
        return None
    return series


def build_points(
    timestamps: list,
    closes: list,
    opens: Optional[list] = None,
    highs: Optional[list] = None,
    lows: Optional[list] = None,
    volumes: Optional[list] = None,
) -> list[HistoricalPricePoint]:
    """
    Zip parallel OHLCV arrays (epoch seconds) into ascending bars.

    Rows with a missing or non-positive close are skipped.
    """
    points = []
    for i, ts in enumerate(timestamps):
        close = _at(closes, i)
        if ts is None or close is None or close <= 0:
            continue
        points.append(HistoricalPricePoint(
            date=datetime.fromtimestamp(int(ts), tz=timezone.utc),
            open=_at(opens, i) or 0.0,
            high=_at(highs, i) or 0.0,
            low=_at(lows, i) or 0.0,
            close=close,
            volume=_at(volumes, i) or 0.0,
        ))
    points.sort(key=lambda p: p.date)
    return points


def _at(values: Optional[list], i: int) -> Optional[float]:
    if not values or i >= len(values) or values[i] is None:
        return None
    value = float(values[i])
    return value if value == value else None  # NaN check


class MarketDataServiceInterface(BaseService[QuoteRequest, Optional[Quote]]):
    """
    Market Data Service Contract.

    INPUT: QuoteRequest
        - symbol: ticker or friendly name ("nike", "bitcoin")
        - asset_type: stock / crypto (inferred when omitted)
        - currency: BRL / USD

    OUTPUT: Quote in the requested currency, or None when no provider
        could price the symbol
    """

    @property
    def name(self) -> str:
        return "MarketDataService"

    @abstractmethod
    async def execute(self, input_data: QuoteRequest) -> Optional[Quote]:
        """Resolve a live quote."""
        pass

    @abstractmethod
    async def get_quote(
        self,
        ticker: str,
        asset_type: Optional[AssetType] = None,
        currency: Currency = Currency.BRL,
    ) -> Optional[Quote]:
        pass

    @abstractmethod
    async def get_quotes(
        self,
        tickers: list[str],
        asset_type: Optional[AssetType] = None,
        currency: Currency = Currency.BRL,
    ) -> dict[str, Quote]:
        pass

    @abstractmethod
    async def get_historical_price(
        self,
        ticker: str,
        target: date,
        asset_type: Optional[AssetType] = None,
        currency: Currency = Currency.BRL,
    ) -> Optional[HistoricalPrice]:
        pass

    @abstractmethod
    async def get_historical_series(
        self,
        ticker: str,
        range_: HistoryRange = HistoryRange.M1,
        asset_type: Optional[AssetType] = None,
        currency: Optional[Currency] = None,
    ) -> list[HistoricalPricePoint]:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check that at least one provider answers."""
        pass
