import asyncio
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from pricefeed.core.config import Settings
from pricefeed.schemas.market import AssetType, Currency
from pricefeed.services.base import UpstreamMalformed, UpstreamUnavailable
from pricefeed.services.cache import QuoteCache
from pricefeed.services.http_client import HttpClient
from pricefeed.services.quotes.brapi_adapter import BrapiQuoteStrategy, range_for_start
from pricefeed.services.quotes.crypto_adapter import CoinGeckoStrategy
from pricefeed.services.quotes.interface import build_points
from pricefeed.services.quotes.orchestrator import QuoteOrchestrator
from pricefeed.services.quotes.registry import ProviderRegistry, build_registry
from pricefeed.services.quotes.us_stocks_adapter import (
    AlphaVantageStrategy,
    FinnhubStrategy,
    TwelveDataStrategy,
)
from pricefeed.services.quotes.yahoo_adapter import YahooChartStrategy


def _settings(**overrides) -> Settings:
    keys = dict(brapi_token=None, finnhub_api_key=None, twelve_data_key=None, alpha_vantage_key=None)
    keys.update(overrides)
    return Settings(**keys)


def _http(responses: dict) -> MagicMock:
    """HTTP client answering by URL substring; first matching fragment wins."""
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


def _epoch(year, month, day) -> int:
    return int(datetime(year, month, day, 13, tzinfo=timezone.utc).timestamp())


# ============ Brapi ============


def test_brapi_quote_parsed() -> None:
    http = _http({"/quote/PETR4": {"results": [{
        "symbol": "PETR4",
        "shortName": "PETROBRAS PN",
        "regularMarketPrice": 38.42,
        "regularMarketChange": 0.5,
        "regularMarketChangePercent": 1.3,
        "currency": "BRL",
    }]}})
    strategy = BrapiQuoteStrategy(http, _settings())

    quote = asyncio.run(strategy.get_quote("PETR4", AssetType.STOCK, Currency.BRL))

    assert quote.price == 38.42
    assert quote.currency == Currency.BRL
    assert quote.name == "PETROBRAS PN"
    assert quote.source == "brapi"
    assert "token" not in http.get_json.call_args.kwargs["params"]


def test_brapi_token_sent_when_configured() -> None:
    http = _http({"/quote/": {"results": [{"symbol": "VALE3", "regularMarketPrice": 60.0}]}})
    strategy = BrapiQuoteStrategy(http, _settings(brapi_token="secret"))

    asyncio.run(strategy.get_quote("VALE3", AssetType.STOCK, Currency.BRL))

    assert http.get_json.call_args.kwargs["params"]["token"] == "secret"


def test_brapi_empty_results_is_no_answer() -> None:
    strategy = BrapiQuoteStrategy(_http({"/quote/": {"results": []}}), _settings())
    assert asyncio.run(strategy.get_quote("XPTO3", AssetType.STOCK, Currency.BRL)) is None


def test_brapi_zero_price_is_no_answer() -> None:
    http = _http({"/quote/": {"results": [{"symbol": "XPTO3", "regularMarketPrice": 0}]}})
    strategy = BrapiQuoteStrategy(http, _settings())
    assert asyncio.run(strategy.get_quote("XPTO3", AssetType.STOCK, Currency.BRL)) is None


def test_brapi_window_filters_history() -> None:
    rows = [
        {"date": _epoch(2024, 3, d), "open": 1, "high": 2, "low": 1, "close": float(d), "volume": 100}
        for d in (5, 14, 15, 20)
    ]
    http = _http({"/quote/": {"results": [{"symbol": "PETR4", "currency": "BRL", "historicalDataPrice": rows}]}})
    strategy = BrapiQuoteStrategy(http, _settings())

    series = asyncio.run(strategy.get_price_window("PETR4", date(2024, 3, 9), date(2024, 3, 19), Currency.BRL))

    assert [p.close for p in series.points] == [14.0, 15.0]


def test_range_for_start_picks_shortest_covering_range() -> None:
    today = date(2024, 6, 30)
    assert range_for_start(date(2024, 6, 27), today) == "5d"
    assert range_for_start(date(2024, 6, 1), today) == "1mo"
    assert range_for_start(date(2023, 1, 1), today) == "2y"
    assert range_for_start(date(2010, 1, 1), today) == "max"


# ============ Yahoo ============


def _chart(price=None, currency="USD", timestamps=None, closes=None):
    return {"chart": {"result": [{
        "meta": {"regularMarketPrice": price, "chartPreviousClose": 100.0, "currency": currency},
        "timestamp": timestamps or [],
        "indicators": {"quote": [{"close": closes or []}]},
    }], "error": None}}


def test_yahoo_quote_computes_change() -> None:
    strategy = YahooChartStrategy(_http({"/AAPL": _chart(price=110.0)}), _settings())

    quote = asyncio.run(strategy.get_quote("AAPL", AssetType.STOCK, Currency.BRL))

    assert quote.price == 110.0
    assert quote.change == pytest.approx(10.0)
    assert quote.change_percent == pytest.approx(10.0)
    assert quote.currency == Currency.USD


def test_yahoo_tries_b3_listing_after_us(monkeypatch) -> None:
    monkeypatch.setattr(
        "pricefeed.services.quotes.yahoo_adapter.yahoo_symbols",
        lambda ticker: [ticker, f"{ticker}.SA"],
    )
    http = _http({
        "/ABCD.SA": _chart(price=12.0, currency="BRL"),
        "/ABCD": {"chart": {"result": None, "error": {"description": "Not Found"}}},
    })
    strategy = YahooChartStrategy(http, _settings())

    quote = asyncio.run(strategy.get_quote("ABCD", AssetType.STOCK, Currency.BRL))

    assert quote.price == 12.0
    assert quote.currency == Currency.BRL
    assert http.get_json.await_count == 2


def test_yahoo_series_skips_null_closes() -> None:
    chart = _chart(
        price=1.0,
        currency="BRL",
        timestamps=[_epoch(2024, 3, 14), _epoch(2024, 3, 15), _epoch(2024, 3, 18)],
        closes=[37.0, None, 38.0],
    )
    strategy = YahooChartStrategy(_http({"/PETR4.SA": chart}), _settings())

    result = asyncio.run(strategy.get_historical_price("PETR4", date(2024, 3, 16), Currency.BRL))

    assert result.price == 37.0
    assert result.matched_date == date(2024, 3, 14)


# ============ US keyed providers ============


def test_finnhub_all_zero_payload_is_no_answer() -> None:
    http = _http({"finnhub": {"c": 0, "d": None, "dp": None}})
    strategy = FinnhubStrategy(http, _settings(finnhub_api_key="k"))
    assert asyncio.run(strategy.get_quote("NOPE", AssetType.STOCK, Currency.BRL)) is None


def test_finnhub_quote_in_usd() -> None:
    http = _http({"finnhub": {"c": 190.5, "d": 1.5, "dp": 0.79}})
    strategy = FinnhubStrategy(http, _settings(finnhub_api_key="k"))

    quote = asyncio.run(strategy.get_quote("AAPL", AssetType.STOCK, Currency.BRL))

    assert quote.price == 190.5
    assert quote.currency == Currency.USD


def test_us_providers_skip_b3_tickers() -> None:
    strategy = FinnhubStrategy(_http({}), _settings(finnhub_api_key="k"))
    assert not strategy.can_handle("PETR4", AssetType.STOCK)
    assert strategy.can_handle("AAPL", AssetType.STOCK)
    assert not strategy.can_handle("BTC", AssetType.CRYPTO)


def test_alphavantage_rate_limit_note_is_no_answer() -> None:
    http = _http({"alphavantage": {"Note": "Thank you for using Alpha Vantage!"}})
    strategy = AlphaVantageStrategy(http, _settings(alpha_vantage_key="k"))
    assert asyncio.run(strategy.get_quote("AAPL", AssetType.STOCK, Currency.BRL)) is None


def test_alphavantage_global_quote() -> None:
    http = _http({"alphavantage": {"Global Quote": {
        "05. price": "171.20",
        "09. change": "-1.10",
        "10. change percent": "-0.6384%",
    }}})
    strategy = AlphaVantageStrategy(http, _settings(alpha_vantage_key="k"))

    quote = asyncio.run(strategy.get_quote("AAPL", AssetType.STOCK, Currency.BRL))

    assert quote.price == pytest.approx(171.2)
    assert quote.change_percent == pytest.approx(-0.6384)


def test_twelvedata_in_band_error_is_no_answer() -> None:
    http = _http({"twelvedata": {"status": "error", "message": "symbol not found"}})
    strategy = TwelveDataStrategy(http, _settings(twelve_data_key="k"))
    assert asyncio.run(strategy.get_quote("NOPE", AssetType.STOCK, Currency.BRL)) is None


def test_twelvedata_time_series_sorted_ascending() -> None:
    http = _http({"time_series": {"values": [
        {"datetime": "2024-03-15", "close": "172.0"},
        {"datetime": "2024-03-14", "close": "170.0"},
    ]}})
    strategy = TwelveDataStrategy(http, _settings(twelve_data_key="k"))

    series = asyncio.run(strategy.get_price_window("AAPL", date(2024, 3, 9), date(2024, 3, 19), Currency.USD))

    assert [p.close for p in series.points] == [170.0, 172.0]


# ============ CoinGecko ============


def test_coingecko_quote_in_requested_currency() -> None:
    http = _http({"simple/price": {"bitcoin": {"brl": 350000.0, "brl_24h_change": 2.0}}})
    strategy = CoinGeckoStrategy(http, _settings())

    quote = asyncio.run(strategy.get_quote("BTC", AssetType.CRYPTO, Currency.BRL))

    assert quote.price == 350000.0
    assert quote.currency == Currency.BRL
    assert quote.symbol == "BTC"


def test_coingecko_history_endpoint_used_when_chart_empty() -> None:
    http = _http({
        "market_chart": {"prices": []},
        "/history": {"market_data": {"current_price": {"brl": 300000.0}}},
    })
    strategy = CoinGeckoStrategy(http, _settings())

    result = asyncio.run(strategy.get_historical_price("BTC", date(2024, 3, 15), Currency.BRL))

    assert result.price == 300000.0
    assert http.get_json.call_args.kwargs["params"]["date"] == "15-03-2024"


# ============ Helpers / registry ============


def test_build_points_drops_bad_rows_and_sorts() -> None:
    points = build_points(
        timestamps=[_epoch(2024, 3, 15), _epoch(2024, 3, 14), None, _epoch(2024, 3, 13)],
        closes=[2.0, 1.0, 5.0, float("nan")],
    )
    assert [p.close for p in points] == [1.0, 2.0]


def test_registry_excludes_providers_without_credentials() -> None:
    registry = build_registry(_settings(finnhub_api_key="k"), http=_http({}))

    names = [s.name for s in registry.strategies]
    described = {d.name: d.available for d in registry.describe()}

    assert "finnhub" in names
    assert "twelvedata" not in names
    assert "alphavantage" not in names
    assert "brapi-crypto" not in names
    assert described["twelvedata"] is False
    assert [s.priority for s in registry.strategies] == sorted(s.priority for s in registry.strategies)


# ============ Non-object payloads ============


def test_brapi_null_or_list_body_is_no_answer() -> None:
    for body in (None, []):
        strategy = BrapiQuoteStrategy(_http({"/quote/": body}), _settings())
        assert asyncio.run(strategy.get_quote("PETR4", AssetType.STOCK, Currency.BRL)) is None


def test_yahoo_null_or_list_body_is_no_answer() -> None:
    for body in (None, []):
        strategy = YahooChartStrategy(_http({"/AAPL": body}), _settings())
        assert asyncio.run(strategy.get_quote("AAPL", AssetType.STOCK, Currency.USD)) is None


def test_coingecko_unexpected_shapes_are_no_answer() -> None:
    for body in (None, [], {"bitcoin": 5}):
        strategy = CoinGeckoStrategy(_http({"/simple/price": body}), _settings())
        assert asyncio.run(strategy.get_quote("BTC", AssetType.CRYPTO, Currency.BRL)) is None


def test_keyed_us_providers_survive_null_body() -> None:
    strategies = [
        FinnhubStrategy(_http({"finnhub": None}), _settings(finnhub_api_key="k")),
        TwelveDataStrategy(_http({"twelvedata": None}), _settings(twelve_data_key="k")),
        AlphaVantageStrategy(_http({"alphavantage": []}), _settings(alpha_vantage_key="k")),
    ]
    for strategy in strategies:
        assert asyncio.run(strategy.get_quote("AAPL", AssetType.STOCK, Currency.USD)) is None


def test_null_body_falls_through_to_next_provider() -> None:
    broken = BrapiQuoteStrategy(_http({"/quote/": None}), _settings())
    yahoo = YahooChartStrategy(_http({"/PETR4.SA": _chart(price=38.0, currency="BRL")}), _settings())
    orchestrator = QuoteOrchestrator(
        ProviderRegistry([broken, yahoo]),
        QuoteCache(),
        MagicMock(),
        batch_size=5,
        batch_delay=0,
    )

    quote = asyncio.run(orchestrator.get_quote("PETR4", AssetType.STOCK, Currency.BRL))

    assert quote.source == "yahoo"
    assert quote.price == 38.0


class _Response:
    status = 200

    def __init__(self, body):
        self.body = body
        self.url = MagicMock(host="example.test")

    async def json(self, content_type=None):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def test_http_client_rejects_non_object_json() -> None:
    client = HttpClient()
    for body in (None, [1, 2], "text"):
        client._session = MagicMock(closed=False)
        client._session.get = MagicMock(return_value=_Response(body))

        with pytest.raises(UpstreamMalformed):
            asyncio.run(client.get_json("https://example.test/quote"))


def test_http_client_returns_object_body() -> None:
    client = HttpClient()
    client._session = MagicMock(closed=False)
    client._session.get = MagicMock(return_value=_Response({"ok": True}))

    assert asyncio.run(client.get_json("https://example.test/quote", params={"a": None})) == {"ok": True}
