"""
PriceFeed Services

Service layer containing the market-data resolution engine.
"""

from pricefeed.services.base import BaseService

__all__ = ["BaseService"]
