"""
Symbol Resolver & Asset Classifier

Maps what a user typed ("nike", "Bitcoin", "petr4") to a canonical ticker
and tags it with the market it trades on. Pure lookups - no I/O.
"""

import re

from pricefeed.schemas.market import AssetType, MarketClass


# Friendly names -> tickers
TICKER_ALIASES = {
    "NIKE": "NKE",
    "APPLE": "AAPL",
    "MICROSOFT": "MSFT",
    "GOOGLE": "GOOGL",
    "AMAZON": "AMZN",
    "TESLA": "TSLA",
    "FACEBOOK": "META",
    "NETFLIX": "NFLX",
    "NVIDIA": "NVDA",
    "DISNEY": "DIS",
    "JPMORGAN": "JPM",
    "JP": "JPM",
    "VISA": "V",
    "MASTERCARD": "MA",
    "INTEL": "INTC",
    "BITCOIN": "BTC",
    "ETHEREUM": "ETH",
}

# Crypto tickers -> CoinGecko coin ids
CRYPTO_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "BNB": "binancecoin",
    "XRP": "ripple",
    "ADA": "cardano",
    "DOGE": "dogecoin",
    "SOL": "solana",
    "DOT": "polkadot",
    "MATIC": "matic-network",
    "LTC": "litecoin",
    "SHIB": "shiba-inu",
    "AVAX": "avalanche-2",
    "UNI": "uniswap",
    "LINK": "chainlink",
    "TRX": "tron",
    "ATOM": "cosmos",
    "XLM": "stellar",
    "ETC": "ethereum-classic",
    "FIL": "filecoin",
    "HBAR": "hedera-hashgraph",
    "USDT": "tether",
    "USDC": "usd-coin",
}

# US listings we recognise without asking a provider (stocks, ETFs, REITs)
US_STOCKS = frozenset({
    # Stocks
    "AAPL", "MSFT", "GOOGL", "GOOG", "AMZN", "TSLA", "NVDA", "META",
    "NFLX", "NKE", "DIS", "JPM", "V", "MA", "JNJ", "PG", "KO", "PEP",
    "WMT", "HD", "BAC", "XOM", "CVX", "ABBV", "PFE", "MRK", "TMO",
    "COST", "AVGO", "CSCO", "ACN", "MCD", "ABT", "DHR", "TXN", "NEE",
    "PM", "UNH", "LIN", "ORCL", "AMD", "INTC", "QCOM", "IBM", "CRM",
    "ADBE", "PYPL", "SQ", "SHOP", "UBER", "BA", "GE",
    # ETFs
    "SPY", "VOO", "QQQ", "VTI", "IWM", "EEM", "VWO", "GLD", "SLV",
    "TLT", "SCHD", "VYM", "JEPI",
    # REITs
    "O", "PLD", "AMT", "EQIX", "PSA", "SPG", "VNQ",
})

# B3 tickers: four letters followed by the share-class digits (PETR4, TAEE11)
BR_STOCK_PATTERN = re.compile(r"^[A-Z]{4}\d{1,2}$")

_DISALLOWED = re.compile(r"[^A-Z0-9-]")
_QUOTE_SUFFIX = re.compile(r"-(USD|BRL|USDT)$")


def resolve_alias(raw: str) -> str:
    """Normalize user input and map friendly names to tickers."""
    cleaned = _DISALLOWED.sub("", (raw or "").upper())
    return TICKER_ALIASES.get(cleaned, cleaned)


def classify(ticker: str) -> MarketClass:
    """Classify a canonical ticker by market."""
    symbol = (ticker or "").upper()

    if strip_quote_suffix(symbol) in CRYPTO_IDS:
        return MarketClass.CRYPTO
    if symbol in US_STOCKS:
        return MarketClass.US_STOCK
    if BR_STOCK_PATTERN.match(symbol):
        return MarketClass.BR_STOCK
    return MarketClass.UNKNOWN


def asset_type_for(ticker: str) -> AssetType:
    """Coarse asset type; anything that is not a known crypto is a stock."""
    if classify(ticker) == MarketClass.CRYPTO:
        return AssetType.CRYPTO
    return AssetType.STOCK


def strip_quote_suffix(ticker: str) -> str:
    """BTC-USD -> BTC"""
    return _QUOTE_SUFFIX.sub("", ticker.upper())


def coingecko_id(ticker: str) -> str:
    """CoinGecko id for a crypto ticker; unknown coins fall back to lowercase."""
    coin = strip_quote_suffix(ticker)
    return CRYPTO_IDS.get(coin, coin.lower())


def yahoo_symbols(ticker: str) -> list[str]:
    """
    Yahoo Finance symbols to try for a ticker, most likely first.

    B3 listings need the .SA suffix; unknown tickers are tried as US
    listings first and then on B3.
    """
    symbol = ticker.upper()
    if symbol.endswith(".SA"):
        return [symbol]

    market = classify(symbol)
    if market == MarketClass.BR_STOCK:
        return [f"{symbol}.SA"]
    if market == MarketClass.US_STOCK:
        return [symbol]
    return [symbol, f"{symbol}.SA"]
