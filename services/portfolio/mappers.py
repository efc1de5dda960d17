# services/portfolio/mappers.py
"""
Provider mappers: raw broker records -> canonical PortfolioAsset.

Category/currency decisions are explicit tables of (predicate, result) rules
evaluated in order, each table ending in a default. They are total: any
string (including empty/None) maps to a canonical value without raising.
"""
from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from schemas.portfolio import AssetCategory, Currency, PortfolioAsset
from schemas.providers import BinanceAsset, IOLPortfolioItem, PPIPosition

Rule = Tuple[Callable[[str], bool], str]


def _contains(*needles: str) -> Callable[[str], bool]:
    return lambda label: any(n in label for n in needles)


def _equals(value: str) -> Callable[[str], bool]:
    return lambda label: label == value


def _decide(label: str, rules: Sequence[Rule], default: str) -> str:
    for predicate, result in rules:
        if predicate(label):
            return result
    return default


# ---------------------------------------------------------------------------
# Category tables
# ---------------------------------------------------------------------------

# IOL `titulo.tipo`: "CEDEARS", "ACCIONES", "Bonos", ... (lower-cased)
IOL_CATEGORY_RULES: List[Rule] = [
    (_contains("cedear"), "cedear"),
    (_contains("crypto", "cripto"), "crypto"),
]
IOL_CATEGORY_DEFAULT: AssetCategory = "stock"

# PPI `InstrumentType`: "CEDEARS", "ACCIONES", "ETF", "BONOS", "LETRAS", "ON" (upper-cased)
PPI_CATEGORY_RULES: List[Rule] = [
    (_contains("CEDEAR"), "cedear"),
    (_contains("ACCION"), "stock"),
    (_contains("ETF"), "stock"),
    (_contains("BONO", "LETRA"), "stock"),
    (_equals("ON"), "stock"),
]
PPI_CATEGORY_DEFAULT: AssetCategory = "stock"


def map_iol_category(tipo: Optional[str]) -> AssetCategory:
    return _decide((tipo or "").lower(), IOL_CATEGORY_RULES, IOL_CATEGORY_DEFAULT)  # type: ignore[return-value]


def map_ppi_category(instrument_type: Optional[str]) -> AssetCategory:
    return _decide((instrument_type or "").upper(), PPI_CATEGORY_RULES, PPI_CATEGORY_DEFAULT)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Currency tables
# ---------------------------------------------------------------------------

# IOL `moneda`: "peso_Argentino", "dolar_Estadounidense"
IOL_CURRENCY_RULES: List[Rule] = [
    (_contains("dolar", "dollar"), "USD"),
]

# PPI `Currency`: "ARS", "USD", "Dolares"
PPI_CURRENCY_RULES: List[Rule] = [
    (_contains("USD", "DOLAR", "DOLLAR"), "USD"),
]

CURRENCY_DEFAULT: Currency = "ARS"


def map_iol_currency(moneda: Optional[str]) -> Currency:
    return _decide((moneda or "").lower(), IOL_CURRENCY_RULES, CURRENCY_DEFAULT)  # type: ignore[return-value]


def map_ppi_currency(currency: Optional[str]) -> Currency:
    return _decide((currency or "").upper(), PPI_CURRENCY_RULES, CURRENCY_DEFAULT)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Crypto names
# ---------------------------------------------------------------------------

CRYPTO_NAMES = {
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "BNB": "Binance Coin",
    "SOL": "Solana",
    "XRP": "Ripple",
    "ADA": "Cardano",
    "DOGE": "Dogecoin",
    "DOT": "Polkadot",
    "MATIC": "Polygon",
    "LINK": "Chainlink",
    "AVAX": "Avalanche",
    "UNI": "Uniswap",
    "ATOM": "Cosmos",
    "LTC": "Litecoin",
    "USDT": "Tether USD",
    "USDC": "USD Coin",
    "BUSD": "Binance USD",
    "DAI": "Dai Stablecoin",
    "SHIB": "Shiba Inu",
    "ARB": "Arbitrum",
    "OP": "Optimism",
    "APT": "Aptos",
    "NEAR": "NEAR Protocol",
    "FIL": "Filecoin",
    "ICP": "Internet Computer",
    "VET": "VeChain",
    "ALGO": "Algorand",
    "SAND": "The Sandbox",
    "MANA": "Decentraland",
    "AXS": "Axie Infinity",
    "AAVE": "Aave",
    "CRV": "Curve DAO",
    "MKR": "Maker",
    "SNX": "Synthetix",
    "COMP": "Compound",
    "SUSHI": "SushiSwap",
    "YFI": "yearn.finance",
    "1INCH": "1inch Network",
    "ENS": "Ethereum Name Service",
    "LDO": "Lido DAO",
    "RPL": "Rocket Pool",
    "FDUSD": "First Digital USD",
}


def crypto_name(symbol: str) -> str:
    return CRYPTO_NAMES.get(symbol, symbol)


# ---------------------------------------------------------------------------
# P&L
# ---------------------------------------------------------------------------

def calculate_pnl(
    current_price: float,
    average_price: float,
    quantity: float,
    has_cost_basis: bool = True,
) -> Tuple[float, float]:
    """(pnl, pnl_percent); both 0.0 when there is no usable cost basis."""
    if not has_cost_basis or average_price <= 0:
        return 0.0, 0.0
    pnl = (current_price - average_price) * quantity
    pnl_percent = (current_price - average_price) / average_price * 100.0
    return pnl, pnl_percent


# ---------------------------------------------------------------------------
# Record mappers
# ---------------------------------------------------------------------------

def map_iol_position(item: IOLPortfolioItem) -> PortfolioAsset:
    titulo = item.titulo
    ticker = titulo.simbolo.strip().upper()
    has_cost_basis = item.ppc > 0
    return PortfolioAsset(
        id=f"iol-{ticker}",
        ticker=ticker,
        name=titulo.descripcion or ticker,
        category=map_iol_category(titulo.tipo),
        currency=map_iol_currency(titulo.moneda),
        quantity=item.cantidad,
        average_price=max(item.ppc, 0.0),
        current_price=max(item.ultimo_precio, 0.0),
        current_value=item.valorizado,
        pnl=item.ganancia_dinero if has_cost_basis else 0.0,
        pnl_percent=item.ganancia_porcentaje if has_cost_basis else 0.0,
        source="iol",
        has_cost_basis=has_cost_basis,
    )


def map_ppi_position(position: PPIPosition) -> PortfolioAsset:
    ticker = position.ticker.strip().upper()
    has_cost_basis = position.average_price > 0
    return PortfolioAsset(
        id=f"ppi-{ticker}",
        ticker=ticker,
        name=position.description or ticker,
        category=map_ppi_category(position.instrument_type),
        currency=map_ppi_currency(position.currency),
        quantity=position.quantity,
        average_price=max(position.average_price, 0.0),
        current_price=max(position.price, 0.0),
        current_value=position.amount,
        pnl=position.pnl if has_cost_basis else 0.0,
        pnl_percent=position.pnl_percentage if has_cost_basis else 0.0,
        source="ppi",
        has_cost_basis=has_cost_basis,
    )


def map_binance_asset(asset: BinanceAsset) -> PortfolioAsset:
    # Spot balances carry no cost basis.
    ticker = asset.asset.strip().upper()
    return PortfolioAsset(
        id=f"binance-{ticker}",
        ticker=ticker,
        name=crypto_name(ticker),
        category="crypto",
        currency="USD",
        quantity=asset.total,
        average_price=0.0,
        current_price=asset.price,
        current_value=asset.usd_value,
        pnl=0.0,
        pnl_percent=0.0,
        locked=asset.locked,
        source="binance",
        has_cost_basis=False,
    )


def map_iol_positions(items: Iterable[IOLPortfolioItem]) -> List[PortfolioAsset]:
    return [
        map_iol_position(it)
        for it in items
        if it.titulo.simbolo.strip() and it.cantidad > 0
    ]


def map_ppi_positions(positions: Iterable[PPIPosition]) -> List[PortfolioAsset]:
    return [
        map_ppi_position(p)
        for p in positions
        if p.ticker.strip() and p.quantity > 0
    ]


def map_binance_assets(assets: Iterable[BinanceAsset], dust_threshold_usd: float = 1.0) -> List[PortfolioAsset]:
    return [
        map_binance_asset(a)
        for a in assets
        if a.asset.strip() and a.total > 0 and a.usd_value >= dust_threshold_usd
    ]
