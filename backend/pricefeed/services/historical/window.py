"""
Date-window policy for historical lookups.

Markets close on weekends and holidays, so a request for a single day is
answered from a small window around it.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Sequence

from pricefeed.core.config import settings
from pricefeed.schemas.market import HistoricalPricePoint


def window_bounds(target: date) -> tuple[date, date]:
    """[target - 7 days, target + 3 days] with the default settings."""
    return (
        target - timedelta(days=settings.history_window_days_before),
        target + timedelta(days=settings.history_window_days_after),
    )


def utc_day(moment: datetime) -> date:
    """Calendar day of a timestamp in UTC (naive timestamps are taken as UTC)."""
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(timezone.utc).date()


def select_close(
    points: Sequence[HistoricalPricePoint],
    target: date,
) -> Optional[HistoricalPricePoint]:
    """
    Pick the bar that best represents ``target``.

    Preference order:
    1. bar whose UTC day equals the target
    2. latest bar on or before the target (previous trading day)
    3. earliest bar after the target

    Bars with a non-positive close are ignored. Returns None for an empty
    (or entirely invalid) window.
    """
    valid = [p for p in points if p.close > 0]
    if not valid:
        return None

    before: Optional[HistoricalPricePoint] = None
    after: Optional[HistoricalPricePoint] = None

    for point in valid:
        day = utc_day(point.date)
        if day == target:
            return point
        if day < target:
            if before is None or point.date > before.date:
                before = point
        elif after is None or point.date < after.date:
            after = point

    return before or after
