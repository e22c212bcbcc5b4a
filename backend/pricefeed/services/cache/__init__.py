"""
Cache module for PriceFeed.

Provides the in-process positive/negative cache for resolved prices.
"""

from pricefeed.services.cache.memory_cache import (
    CacheEntry,
    QuoteCache,
    get_quote_cache,
)

__all__ = [
    "CacheEntry",
    "QuoteCache",
    "get_quote_cache",
]
