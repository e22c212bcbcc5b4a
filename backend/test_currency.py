import asyncio
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from pricefeed.schemas.market import Currency
from pricefeed.services.base import UnsupportedCurrencyPair, UpstreamUnavailable
from pricefeed.services.cache import QuoteCache
from pricefeed.services.currency import CurrencyNormalizer


def _http(responses: dict) -> MagicMock:
    """HTTP client whose get_json answers by URL substring (or raises)."""
    async def get_json(url, params=None, headers=None, timeout=None):
        for fragment, answer in responses.items():
            if fragment in url:
                if isinstance(answer, Exception):
                    raise answer
                return answer
        raise UpstreamUnavailable("test", f"unexpected {url}")

    http = MagicMock()
    http.get_json = AsyncMock(side_effect=get_json)
    return http


def _down() -> UpstreamUnavailable:
    return UpstreamUnavailable("test", "down")


def test_frankfurter_rate_for_date() -> None:
    http = _http({"frankfurter": {"date": "2024-03-15", "rates": {"BRL": 4.98}}})
    normalizer = CurrencyNormalizer(http=http, cache=QuoteCache())

    rate = asyncio.run(normalizer.get_usd_to_brl(date(2024, 3, 15)))

    assert rate.rate == 4.98
    assert rate.source == "frankfurter"
    assert rate.as_of == date(2024, 3, 15)
    assert not rate.degraded
    assert "/2024-03-15" in http.get_json.call_args.args[0]


def test_awesomeapi_used_when_frankfurter_fails() -> None:
    http = _http({
        "frankfurter": _down(),
        "awesomeapi": {"USDBRL": {"bid": "5.12"}},
    })
    normalizer = CurrencyNormalizer(http=http, cache=QuoteCache())

    rate = asyncio.run(normalizer.get_usd_to_brl())

    assert rate.rate == 5.12
    assert rate.source == "awesomeapi"


def test_static_fallback_is_flagged_degraded() -> None:
    http = _http({"frankfurter": _down(), "awesomeapi": _down()})
    normalizer = CurrencyNormalizer(http=http, cache=QuoteCache(), fallback_rate=5.8)

    rate = asyncio.run(normalizer.get_usd_to_brl())

    assert rate.rate == 5.8
    assert rate.degraded
    assert rate.source == "fallback"


def test_exhausted_chain_is_not_retried_while_suppressed() -> None:
    http = _http({"frankfurter": _down(), "awesomeapi": _down()})
    normalizer = CurrencyNormalizer(http=http, cache=QuoteCache())

    async def _run():
        await normalizer.get_usd_to_brl()
        calls = http.get_json.await_count
        second = await normalizer.get_usd_to_brl()
        return calls, second

    calls, second = asyncio.run(_run())

    assert calls == 2
    assert http.get_json.await_count == 2
    assert second.degraded


def test_rate_is_cached() -> None:
    http = _http({"frankfurter": {"date": "2024-03-15", "rates": {"BRL": 5.0}}})
    normalizer = CurrencyNormalizer(http=http, cache=QuoteCache())

    async def _run():
        await normalizer.get_usd_to_brl()
        await normalizer.get_usd_to_brl()

    asyncio.run(_run())

    assert http.get_json.await_count == 1


def test_convert_both_directions() -> None:
    http = _http({"frankfurter": {"date": "2024-03-15", "rates": {"BRL": 5.0}}})
    normalizer = CurrencyNormalizer(http=http, cache=QuoteCache())

    to_brl = asyncio.run(normalizer.convert(10.0, Currency.USD, Currency.BRL))
    to_usd = asyncio.run(normalizer.convert(50.0, Currency.BRL, Currency.USD))

    assert to_brl == pytest.approx(50.0)
    assert to_usd == pytest.approx(10.0)


def test_convert_same_currency_is_noop_without_io() -> None:
    http = _http({})
    normalizer = CurrencyNormalizer(http=http, cache=QuoteCache())

    price, rate = asyncio.run(normalizer.convert_with_rate(12.5, Currency.BRL, Currency.BRL))

    assert price == 12.5
    assert rate is None
    http.get_json.assert_not_awaited()


def test_unsupported_pair_raises() -> None:
    http = _http({})
    normalizer = CurrencyNormalizer(http=http, cache=QuoteCache())

    with pytest.raises(UnsupportedCurrencyPair):
        asyncio.run(normalizer.convert(1.0, "EUR", Currency.BRL))

    http.get_json.assert_not_awaited()
