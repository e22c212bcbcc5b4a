from pricefeed.schemas.market import AssetType, MarketClass
from pricefeed.services.symbols import (
    asset_type_for,
    classify,
    coingecko_id,
    resolve_alias,
    strip_quote_suffix,
    yahoo_symbols,
)


def test_friendly_names_map_to_tickers() -> None:
    assert resolve_alias("nike") == "NKE"
    assert resolve_alias("Bitcoin") == "BTC"
    assert resolve_alias(" apple ") == "AAPL"


def test_unmapped_input_passes_through_cleaned() -> None:
    assert resolve_alias("petr4") == "PETR4"
    assert resolve_alias("brk-b") == "BRK-B"
    assert resolve_alias("vale3!") == "VALE3"


def test_resolve_alias_is_idempotent() -> None:
    for raw in ["nike", "Bitcoin", "petr4", "xyz", "brk-b"]:
        once = resolve_alias(raw)
        assert resolve_alias(once) == once


def test_classify_markets() -> None:
    assert classify("BTC") == MarketClass.CRYPTO
    assert classify("AAPL") == MarketClass.US_STOCK
    assert classify("SPY") == MarketClass.US_STOCK
    assert classify("PETR4") == MarketClass.BR_STOCK
    assert classify("TAEE11") == MarketClass.BR_STOCK
    assert classify("ZZZZ") == MarketClass.UNKNOWN


def test_known_crypto_takes_precedence() -> None:
    # Four letters but no digits: not a B3 ticker either way
    assert classify("DOGE") == MarketClass.CRYPTO
    assert asset_type_for("DOGE") == AssetType.CRYPTO


def test_crypto_pairs_with_quote_suffix_are_crypto() -> None:
    assert classify("BTC-USD") == MarketClass.CRYPTO
    assert classify("eth-brl") == MarketClass.CRYPTO
    assert asset_type_for("SOL-USDT") == AssetType.CRYPTO
    # Unknown base coin stays unknown
    assert classify("ZZZZ-USD") == MarketClass.UNKNOWN


def test_asset_type_defaults_to_stock() -> None:
    assert asset_type_for("PETR4") == AssetType.STOCK
    assert asset_type_for("UNKNOWNCO") == AssetType.STOCK


def test_coingecko_id_strips_quote_suffix() -> None:
    assert strip_quote_suffix("BTC-USD") == "BTC"
    assert coingecko_id("ETH-BRL") == "ethereum"
    assert coingecko_id("AVAX") == "avalanche-2"
    assert coingecko_id("NEWCOIN") == "newcoin"


def test_yahoo_symbols_by_market() -> None:
    assert yahoo_symbols("PETR4") == ["PETR4.SA"]
    assert yahoo_symbols("AAPL") == ["AAPL"]
    assert yahoo_symbols("XPTO") == ["XPTO", "XPTO.SA"]
    assert yahoo_symbols("VALE3.SA") == ["VALE3.SA"]
