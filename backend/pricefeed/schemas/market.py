"""
CONTRACT 1: Market Data Resolution

Input: ticker + asset type + currency (+ date for historical lookups)
Output: Quote, HistoricalPrice, list[HistoricalPricePoint]

These models are what the resolution engine hands back to its callers
(dashboards, portfolio snapshots). Every price is strictly positive.
"""

from datetime import date as Date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class AssetType(str, Enum):
    STOCK = "stock"
    CRYPTO = "crypto"


class MarketClass(str, Enum):
    """Refinement of AssetType used for routing a ticker to providers."""

    CRYPTO = "crypto"
    US_STOCK = "us_stock"
    BR_STOCK = "br_stock"
    UNKNOWN = "unknown"


class Currency(str, Enum):
    BRL = "BRL"
    USD = "USD"


class HistoryRange(str, Enum):
    M1 = "1mo"
    M3 = "3mo"
    M6 = "6mo"
    Y1 = "1y"
    Y2 = "2y"
    Y5 = "5y"


# Calendar days covered by each range, used by providers that only accept
# explicit start/end dates.
RANGE_DAYS = {
    HistoryRange.M1: 31,
    HistoryRange.M3: 92,
    HistoryRange.M6: 183,
    HistoryRange.Y1: 366,
    HistoryRange.Y2: 731,
    HistoryRange.Y5: 1827,
}


# =============================================================================
# QUOTES
# =============================================================================


class Quote(BaseModel):
    """
    Live quote for a single instrument.

    Created per successful resolution and never mutated: a newer quote
    replaces it once the cache entry expires.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    price: float = Field(..., gt=0)
    change: float = 0.0
    change_percent: float = 0.0
    currency: Currency
    source: str = Field(..., description="Provider that produced the price")
    timestamp: datetime
    asset_type: AssetType
    degraded: bool = Field(
        default=False,
        description="True when a static fallback exchange rate was applied",
    )


# =============================================================================
# HISTORICAL DATA
# =============================================================================


class HistoricalPricePoint(BaseModel):
    """Single daily bar."""

    model_config = ConfigDict(frozen=True)

    date: datetime
    open: float = Field(default=0.0, ge=0)
    high: float = Field(default=0.0, ge=0)
    low: float = Field(default=0.0, ge=0)
    close: float = Field(..., gt=0)
    volume: float = Field(default=0.0, ge=0)


class PriceSeries(BaseModel):
    """Ascending daily bars as returned by one provider, in its own currency."""

    symbol: str
    currency: Currency
    source: str
    points: list[HistoricalPricePoint]


class HistoricalPrice(BaseModel):
    """Representative closing price for a calendar date."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    date: Date
    price: float = Field(..., gt=0)
    currency: Currency
    source: str
    matched_date: Optional[Date] = Field(
        default=None,
        description="Trading day the close was taken from",
    )
    degraded: bool = Field(
        default=False,
        description="True when the live quote stood in for the requested date",
    )


# =============================================================================
# CURRENCY
# =============================================================================


class ExchangeRate(BaseModel):
    """USD -> BRL rate."""

    model_config = ConfigDict(frozen=True)

    base: Currency = Currency.USD
    quote: Currency = Currency.BRL
    rate: float = Field(..., gt=0)
    as_of: Date
    source: str
    degraded: bool = False


# =============================================================================
# PROVIDERS / SEARCH
# =============================================================================


class ProviderDescriptor(BaseModel):
    """Static description of a registered provider strategy."""

    name: str
    priority: int
    available: bool
    supports_history: bool
    required_credentials: list[str] = Field(default_factory=list)


class SymbolMatch(BaseModel):
    symbol: str
    name: str


# =============================================================================
# REQUESTS
# =============================================================================


class QuoteRequest(BaseModel):
    """Input for a single live-quote resolution."""

    symbol: str = Field(..., min_length=1, description="Ticker or friendly name")
    asset_type: Optional[AssetType] = Field(
        default=None,
        description="Inferred from the ticker when omitted",
    )
    currency: Currency = Currency.BRL
