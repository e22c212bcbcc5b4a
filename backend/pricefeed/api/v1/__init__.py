"""
API v1 Router

All API endpoints of the market-data service.
"""

from fastapi import APIRouter

from pricefeed.api.v1.endpoints import market, indicators

router = APIRouter()

# Include all endpoint routers
router.include_router(market.router, prefix="/market", tags=["Market Data"])
router.include_router(indicators.router, prefix="/indicators", tags=["Indicators"])
