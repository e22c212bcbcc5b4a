"""
Symbol Search

Autocomplete for tickers. Crypto is answered from a static list; stocks
come from Yahoo's search API merged with a local list of popular B3 and
US listings (the local list alone when Yahoo is unavailable).
"""

import logging
from typing import Optional

from pricefeed.core.config import settings
from pricefeed.schemas.market import AssetType, SymbolMatch
from pricefeed.services.base import ExternalAPIError
from pricefeed.services.http_client import HttpClient, get_http_client

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
SEARCHABLE_TYPES = {"EQUITY", "ETF", "MUTUALFUND"}


# Popular B3 listings for search
BR_STOCKS = [
    {"symbol": "PETR4", "name": "Petrobras PN"},
    {"symbol": "PETR3", "name": "Petrobras ON"},
    {"symbol": "VALE3", "name": "Vale ON"},
    {"symbol": "ITUB4", "name": "Itau Unibanco PN"},
    {"symbol": "BBDC4", "name": "Bradesco PN"},
    {"symbol": "BBAS3", "name": "Banco do Brasil ON"},
    {"symbol": "ABEV3", "name": "Ambev ON"},
    {"symbol": "WEGE3", "name": "WEG ON"},
    {"symbol": "B3SA3", "name": "B3 ON"},
    {"symbol": "ITSA4", "name": "Itausa PN"},
    {"symbol": "RENT3", "name": "Localiza ON"},
    {"symbol": "SUZB3", "name": "Suzano ON"},
    {"symbol": "GGBR4", "name": "Gerdau PN"},
    {"symbol": "JBSS3", "name": "JBS ON"},
    {"symbol": "LREN3", "name": "Lojas Renner ON"},
    {"symbol": "MGLU3", "name": "Magazine Luiza ON"},
    {"symbol": "ELET3", "name": "Eletrobras ON"},
    {"symbol": "TAEE11", "name": "Taesa Unit"},
    {"symbol": "EGIE3", "name": "Engie Brasil ON"},
    {"symbol": "BBSE3", "name": "BB Seguridade ON"},
    {"symbol": "VIVT3", "name": "Telefonica Brasil ON"},
    {"symbol": "PRIO3", "name": "PetroRio ON"},
    {"symbol": "RADL3", "name": "Raia Drogasil ON"},
    {"symbol": "SANB11", "name": "Santander Brasil Unit"},
    {"symbol": "CMIG4", "name": "Cemig PN"},
    # FIIs
    {"symbol": "HGLG11", "name": "CSHG Logistica FII"},
    {"symbol": "KNRI11", "name": "Kinea Renda Imobiliaria FII"},
    {"symbol": "MXRF11", "name": "Maxi Renda FII"},
    {"symbol": "XPML11", "name": "XP Malls FII"},
    # ETFs
    {"symbol": "BOVA11", "name": "iShares Ibovespa ETF"},
    {"symbol": "IVVB11", "name": "iShares S&P 500 ETF (BRL)"},
]

# Popular US listings for search
US_ASSETS = [
    {"symbol": "AAPL", "name": "Apple Inc."},
    {"symbol": "MSFT", "name": "Microsoft Corporation"},
    {"symbol": "GOOGL", "name": "Alphabet Inc."},
    {"symbol": "AMZN", "name": "Amazon.com Inc."},
    {"symbol": "NVDA", "name": "NVIDIA Corporation"},
    {"symbol": "META", "name": "Meta Platforms Inc."},
    {"symbol": "TSLA", "name": "Tesla Inc."},
    {"symbol": "NFLX", "name": "Netflix Inc."},
    {"symbol": "NKE", "name": "Nike Inc."},
    {"symbol": "DIS", "name": "The Walt Disney Company"},
    {"symbol": "JPM", "name": "JPMorgan Chase & Co."},
    {"symbol": "V", "name": "Visa Inc."},
    {"symbol": "KO", "name": "The Coca-Cola Company"},
    {"symbol": "SPY", "name": "SPDR S&P 500 ETF Trust"},
    {"symbol": "VOO", "name": "Vanguard S&P 500 ETF"},
    {"symbol": "QQQ", "name": "Invesco QQQ Trust"},
    {"symbol": "VTI", "name": "Vanguard Total Stock Market ETF"},
    {"symbol": "SCHD", "name": "Schwab US Dividend Equity ETF"},
    {"symbol": "O", "name": "Realty Income Corporation"},
    {"symbol": "VNQ", "name": "Vanguard Real Estate ETF"},
]

POPULAR_CRYPTOS = [
    {"symbol": "BTC", "name": "Bitcoin"},
    {"symbol": "ETH", "name": "Ethereum"},
    {"symbol": "BNB", "name": "BNB"},
    {"symbol": "XRP", "name": "XRP"},
    {"symbol": "ADA", "name": "Cardano"},
    {"symbol": "DOGE", "name": "Dogecoin"},
    {"symbol": "SOL", "name": "Solana"},
    {"symbol": "DOT", "name": "Polkadot"},
    {"symbol": "MATIC", "name": "Polygon"},
    {"symbol": "LTC", "name": "Litecoin"},
    {"symbol": "SHIB", "name": "Shiba Inu"},
    {"symbol": "AVAX", "name": "Avalanche"},
    {"symbol": "UNI", "name": "Uniswap"},
    {"symbol": "LINK", "name": "Chainlink"},
    {"symbol": "USDT", "name": "Tether"},
    {"symbol": "USDC", "name": "USD Coin"},
]


def search_local(query: str, entries: list[dict], limit: int = 10) -> list[SymbolMatch]:
    """Symbol prefix matches first, then name substring matches."""
    query = query.strip()
    upper = query.upper()
    results: list[dict] = []

    for entry in entries:
        if entry["symbol"].startswith(upper):
            results.append(entry)

    for entry in entries:
        if entry not in results and (upper in entry["symbol"] or query.lower() in entry["name"].lower()):
            results.append(entry)

    return [SymbolMatch(**entry) for entry in results[:limit]]


class SymbolSearch:
    """Symbol autocomplete across crypto and stock listings."""

    def __init__(self, http: Optional[HttpClient] = None):
        self._http = http or get_http_client()

    async def search(
        self,
        query: str,
        asset_type: AssetType = AssetType.STOCK,
        limit: int = 10,
    ) -> list[SymbolMatch]:
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        if asset_type == AssetType.CRYPTO:
            return search_local(query, POPULAR_CRYPTOS, limit)

        local = search_local(query, BR_STOCKS + US_ASSETS, limit)

        try:
            remote = await self._search_yahoo(query, limit)
        except (ExternalAPIError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Yahoo search failed for '{query}', using local list: {e}")
            return local

        merged: dict[str, SymbolMatch] = {}
        for match in remote + local:
            merged.setdefault(match.symbol, match)
        return list(merged.values())[:limit]

    async def _search_yahoo(self, query: str, limit: int) -> list[SymbolMatch]:
        data = await self._http.get_json(
            settings.yahoo_search_url,
            params={"q": query, "quotesCount": limit, "newsCount": 0},
        )

        matches = []
        for item in data.get("quotes") or []:
            if item.get("quoteType") not in SEARCHABLE_TYPES:
                continue

            symbol = str(item.get("symbol") or "").strip().upper()
            if symbol.endswith(".SA"):
                symbol = symbol[:-3]
            # Dotted symbols are other exchanges or derivatives; BRK-B style is kept
            if not symbol or "." in symbol:
                continue

            name = item.get("shortname") or item.get("longname") or symbol
            matches.append(SymbolMatch(symbol=symbol, name=name))

        return matches
