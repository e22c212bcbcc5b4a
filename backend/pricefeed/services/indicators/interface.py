"""
Indicator Calculator Service Interface

Defines the contract for the indicator calculation layer.
"""

from abc import abstractmethod

from pricefeed.services.base import BaseService
from pricefeed.schemas.market import HistoricalPricePoint
from pricefeed.schemas.indicators import StockIndicators


class IndicatorServiceInterface(BaseService[list[HistoricalPricePoint], StockIndicators]):
    """
    Indicator Calculator Contract.

    INPUT: list[HistoricalPricePoint]
        - Daily bars, ascending by date

    OUTPUT: StockIndicators
        - Volatility, drawdown and risk level (always present)
        - Windowed indicators (None when the series is too short)
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    @abstractmethod
    async def execute(self, input_data: list[HistoricalPricePoint]) -> StockIndicators:
        """Calculate indicators for one series."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        pass
