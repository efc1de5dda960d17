# services/portfolio/ticker_metadata.py
"""
Static sector / industry / country / correlation-group table.

`correlation_group` names tickers that tend to move together (e.g. the US
mega-cap tech names). Unknown tickers fall into "ungrouped".
"""
from __future__ import annotations

from typing import Dict, Iterable, NamedTuple


class TickerMeta(NamedTuple):
    sector: str
    industry: str
    country: str
    correlation_group: str


UNKNOWN_META = TickerMeta("Other", "Unknown", "Unknown", "ungrouped")

TICKER_META: Dict[str, TickerMeta] = {
    # Mega-cap Tech
    "AAPL": TickerMeta("Technology", "Consumer Electronics", "US", "us-megacap-tech"),
    "MSFT": TickerMeta("Technology", "Software", "US", "us-megacap-tech"),
    "GOOGL": TickerMeta("Technology", "Internet/Advertising", "US", "us-megacap-tech"),
    "GOOG": TickerMeta("Technology", "Internet/Advertising", "US", "us-megacap-tech"),
    "AMZN": TickerMeta("Technology", "E-Commerce/Cloud", "US", "us-megacap-tech"),
    "META": TickerMeta("Technology", "Social Media", "US", "us-megacap-tech"),
    "NVDA": TickerMeta("Technology", "Semiconductors", "US", "us-semiconductors"),
    "TSLA": TickerMeta("Technology", "Electric Vehicles", "US", "us-ev"),

    # Semiconductors
    "AVGO": TickerMeta("Technology", "Semiconductors", "US", "us-semiconductors"),
    "TSM": TickerMeta("Technology", "Semiconductors", "Taiwan", "us-semiconductors"),
    "ASML": TickerMeta("Technology", "Semiconductor Equipment", "Netherlands", "us-semiconductors"),
    "AMD": TickerMeta("Technology", "Semiconductors", "US", "us-semiconductors"),
    "INTC": TickerMeta("Technology", "Semiconductors", "US", "us-semiconductors"),
    "QCOM": TickerMeta("Technology", "Semiconductors", "US", "us-semiconductors"),
    "TXN": TickerMeta("Technology", "Semiconductors", "US", "us-semiconductors"),
    "MU": TickerMeta("Technology", "Semiconductors", "US", "us-semiconductors"),
    "AMAT": TickerMeta("Technology", "Semiconductor Equipment", "US", "us-semiconductors"),
    "LRCX": TickerMeta("Technology", "Semiconductor Equipment", "US", "us-semiconductors"),
    "KLAC": TickerMeta("Technology", "Semiconductor Equipment", "US", "us-semiconductors"),
    "ENTG": TickerMeta("Technology", "Semiconductor Equipment", "US", "us-semiconductors"),
    "MRVL": TickerMeta("Technology", "Semiconductors", "US", "us-semiconductors"),
    "ON": TickerMeta("Technology", "Semiconductors", "US", "us-semiconductors"),
    "ADI": TickerMeta("Technology", "Semiconductors", "US", "us-semiconductors"),
    "NXPI": TickerMeta("Technology", "Semiconductors", "Netherlands", "us-semiconductors"),
    "ARM": TickerMeta("Technology", "Semiconductors", "UK", "us-semiconductors"),

    # Software & Cloud
    "CRM": TickerMeta("Technology", "Software", "US", "us-saas"),
    "ORCL": TickerMeta("Technology", "Software", "US", "us-saas"),
    "NOW": TickerMeta("Technology", "Software", "US", "us-saas"),
    "ADBE": TickerMeta("Technology", "Software", "US", "us-saas"),
    "INTU": TickerMeta("Technology", "Software", "US", "us-saas"),
    "SNOW": TickerMeta("Technology", "Cloud/Data", "US", "us-saas"),
    "PLTR": TickerMeta("Technology", "Software/AI", "US", "us-saas"),
    "SHOP": TickerMeta("Technology", "E-Commerce Platform", "Canada", "us-saas"),
    "NET": TickerMeta("Technology", "Cloud Infrastructure", "US", "us-saas"),
    "PANW": TickerMeta("Technology", "Cybersecurity", "US", "us-cybersecurity"),
    "CRWD": TickerMeta("Technology", "Cybersecurity", "US", "us-cybersecurity"),
    "ZS": TickerMeta("Technology", "Cybersecurity", "US", "us-cybersecurity"),
    "DDOG": TickerMeta("Technology", "Cloud/Observability", "US", "us-saas"),
    "MDB": TickerMeta("Technology", "Database", "US", "us-saas"),
    "TEAM": TickerMeta("Technology", "Software", "Australia", "us-saas"),
    "HUBS": TickerMeta("Technology", "Software/CRM", "US", "us-saas"),
    "WDAY": TickerMeta("Technology", "Software/HR", "US", "us-saas"),
    "VEEV": TickerMeta("Technology", "Software/Healthcare", "US", "us-saas"),
    "TTD": TickerMeta("Technology", "Ad Tech", "US", "us-saas"),
    "U": TickerMeta("Technology", "Gaming/Software", "US", "us-saas"),
    "TWLO": TickerMeta("Technology", "Cloud Communications", "US", "us-saas"),
    "OKTA": TickerMeta("Technology", "Identity/Security", "US", "us-cybersecurity"),

    # Internet & Digital
    "NFLX": TickerMeta("Communication Services", "Streaming", "US", "us-digital-media"),
    "SPOT": TickerMeta("Communication Services", "Streaming", "Sweden", "us-digital-media"),
    "UBER": TickerMeta("Technology", "Ride-Sharing", "US", "us-digital-platforms"),
    "ABNB": TickerMeta("Technology", "Travel/Platform", "US", "us-digital-platforms"),
    "SNAP": TickerMeta("Communication Services", "Social Media", "US", "us-digital-media"),
    "PINS": TickerMeta("Communication Services", "Social Media", "US", "us-digital-media"),
    "SQ": TickerMeta("Financials", "Fintech", "US", "us-fintech"),
    "PYPL": TickerMeta("Financials", "Fintech", "US", "us-fintech"),
    "COIN": TickerMeta("Financials", "Crypto Exchange", "US", "crypto-adjacent"),
    "RBLX": TickerMeta("Communication Services", "Gaming", "US", "us-digital-media"),
    "DASH": TickerMeta("Technology", "Food Delivery", "US", "us-digital-platforms"),

    # LatAm
    "MELI": TickerMeta("Technology", "E-Commerce/Fintech", "Argentina", "latam-tech"),
    "GLOB": TickerMeta("Technology", "IT Services", "Argentina", "latam-tech"),
    "DESP": TickerMeta("Technology", "Travel/OTA", "Argentina", "latam-tech"),
    "NU": TickerMeta("Financials", "Fintech", "Brazil", "latam-financials"),
    "STNE": TickerMeta("Financials", "Fintech", "Brazil", "latam-financials"),
    "PBR": TickerMeta("Energy", "Oil & Gas", "Brazil", "latam-energy"),
    "VALE": TickerMeta("Materials", "Mining", "Brazil", "latam-materials"),
    "BBD": TickerMeta("Financials", "Banking", "Brazil", "latam-financials"),
    "ITUB": TickerMeta("Financials", "Banking", "Brazil", "latam-financials"),

    # China / Asia
    "BABA": TickerMeta("Technology", "E-Commerce", "China", "china-tech"),
    "JD": TickerMeta("Technology", "E-Commerce", "China", "china-tech"),
    "PDD": TickerMeta("Technology", "E-Commerce", "China", "china-tech"),
    "BIDU": TickerMeta("Technology", "Internet/Search", "China", "china-tech"),
    "NIO": TickerMeta("Consumer Discretionary", "Electric Vehicles", "China", "china-ev"),
    "LI": TickerMeta("Consumer Discretionary", "Electric Vehicles", "China", "china-ev"),
    "XPEV": TickerMeta("Consumer Discretionary", "Electric Vehicles", "China", "china-ev"),

    # US Financials
    "JPM": TickerMeta("Financials", "Banking", "US", "us-banks"),
    "V": TickerMeta("Financials", "Payments", "US", "us-payments"),
    "MA": TickerMeta("Financials", "Payments", "US", "us-payments"),
    "GS": TickerMeta("Financials", "Investment Banking", "US", "us-banks"),
    "MS": TickerMeta("Financials", "Investment Banking", "US", "us-banks"),
    "BAC": TickerMeta("Financials", "Banking", "US", "us-banks"),
    "C": TickerMeta("Financials", "Banking", "US", "us-banks"),
    "WFC": TickerMeta("Financials", "Banking", "US", "us-banks"),
    "SCHW": TickerMeta("Financials", "Brokerage", "US", "us-banks"),
    "BLK": TickerMeta("Financials", "Asset Management", "US", "us-banks"),
    "AXP": TickerMeta("Financials", "Payments/Credit", "US", "us-payments"),
    "BRK.B": TickerMeta("Financials", "Conglomerate", "US", "us-diversified"),

    # Healthcare & Pharma
    "UNH": TickerMeta("Healthcare", "Insurance", "US", "us-healthcare"),
    "JNJ": TickerMeta("Healthcare", "Pharma/MedDev", "US", "us-pharma"),
    "PFE": TickerMeta("Healthcare", "Pharma", "US", "us-pharma"),
    "ABBV": TickerMeta("Healthcare", "Pharma", "US", "us-pharma"),
    "LLY": TickerMeta("Healthcare", "Pharma", "US", "us-pharma"),
    "MRK": TickerMeta("Healthcare", "Pharma", "US", "us-pharma"),
    "TMO": TickerMeta("Healthcare", "Life Sciences", "US", "us-healthcare"),
    "ABT": TickerMeta("Healthcare", "MedDev/Diagnostics", "US", "us-healthcare"),
    "BMY": TickerMeta("Healthcare", "Pharma", "US", "us-pharma"),
    "AMGN": TickerMeta("Healthcare", "Biotech", "US", "us-biotech"),
    "GILD": TickerMeta("Healthcare", "Biotech", "US", "us-biotech"),
    "ISRG": TickerMeta("Healthcare", "MedDev/Robotics", "US", "us-healthcare"),
    "MRNA": TickerMeta("Healthcare", "Biotech/mRNA", "US", "us-biotech"),
    "BIIB": TickerMeta("Healthcare", "Biotech", "US", "us-biotech"),

    # Consumer
    "WMT": TickerMeta("Consumer Staples", "Retail", "US", "us-consumer-staples"),
    "COST": TickerMeta("Consumer Staples", "Retail", "US", "us-consumer-staples"),
    "HD": TickerMeta("Consumer Discretionary", "Home Improvement", "US", "us-consumer-disc"),
    "LOW": TickerMeta("Consumer Discretionary", "Home Improvement", "US", "us-consumer-disc"),
    "KO": TickerMeta("Consumer Staples", "Beverages", "US", "us-consumer-staples"),
    "PEP": TickerMeta("Consumer Staples", "Beverages/Snacks", "US", "us-consumer-staples"),
    "MCD": TickerMeta("Consumer Discretionary", "Restaurants", "US", "us-consumer-disc"),
    "SBUX": TickerMeta("Consumer Discretionary", "Restaurants", "US", "us-consumer-disc"),
    "NKE": TickerMeta("Consumer Discretionary", "Apparel", "US", "us-consumer-disc"),
    "DIS": TickerMeta("Communication Services", "Entertainment", "US", "us-digital-media"),
    "PG": TickerMeta("Consumer Staples", "Household Products", "US", "us-consumer-staples"),
    "CL": TickerMeta("Consumer Staples", "Household Products", "US", "us-consumer-staples"),
    "EL": TickerMeta("Consumer Staples", "Personal Care", "US", "us-consumer-staples"),
    "TGT": TickerMeta("Consumer Discretionary", "Retail", "US", "us-consumer-disc"),

    # Industrials & Defense
    "BA": TickerMeta("Industrials", "Aerospace", "US", "us-defense-aero"),
    "CAT": TickerMeta("Industrials", "Machinery", "US", "us-industrials"),
    "DE": TickerMeta("Industrials", "Machinery/Ag", "US", "us-industrials"),
    "HON": TickerMeta("Industrials", "Conglomerate", "US", "us-industrials"),
    "GE": TickerMeta("Industrials", "Aerospace", "US", "us-defense-aero"),
    "LMT": TickerMeta("Industrials", "Defense", "US", "us-defense-aero"),
    "RTX": TickerMeta("Industrials", "Defense", "US", "us-defense-aero"),
    "UPS": TickerMeta("Industrials", "Logistics", "US", "us-industrials"),
    "MMM": TickerMeta("Industrials", "Conglomerate", "US", "us-industrials"),
    "UNP": TickerMeta("Industrials", "Railroads", "US", "us-industrials"),

    # Energy
    "XOM": TickerMeta("Energy", "Oil & Gas", "US", "us-oil-gas"),
    "CVX": TickerMeta("Energy", "Oil & Gas", "US", "us-oil-gas"),
    "COP": TickerMeta("Energy", "Oil & Gas", "US", "us-oil-gas"),
    "SLB": TickerMeta("Energy", "Oil Services", "US", "us-oil-gas"),
    "EOG": TickerMeta("Energy", "Oil & Gas", "US", "us-oil-gas"),
    "OXY": TickerMeta("Energy", "Oil & Gas", "US", "us-oil-gas"),

    # Telecom
    "T": TickerMeta("Communication Services", "Telecom", "US", "us-telecom"),
    "VZ": TickerMeta("Communication Services", "Telecom", "US", "us-telecom"),
    "TMUS": TickerMeta("Communication Services", "Telecom", "US", "us-telecom"),
    "CMCSA": TickerMeta("Communication Services", "Cable/Telecom", "US", "us-telecom"),

    # Materials & Mining
    "GOLD": TickerMeta("Materials", "Gold Mining", "Canada", "gold-miners"),
    "NEM": TickerMeta("Materials", "Gold Mining", "US", "gold-miners"),
    "FCX": TickerMeta("Materials", "Copper Mining", "US", "base-metals"),
    "X": TickerMeta("Materials", "Steel", "US", "base-metals"),
    "AA": TickerMeta("Materials", "Aluminum", "US", "base-metals"),
    "CLF": TickerMeta("Materials", "Steel/Iron Ore", "US", "base-metals"),

    # Autos & EV
    "F": TickerMeta("Consumer Discretionary", "Auto", "US", "us-auto"),
    "GM": TickerMeta("Consumer Discretionary", "Auto", "US", "us-auto"),
    "RIVN": TickerMeta("Consumer Discretionary", "Electric Vehicles", "US", "us-ev"),
    "LCID": TickerMeta("Consumer Discretionary", "Electric Vehicles", "US", "us-ev"),

    # ETFs
    "SPY": TickerMeta("ETF", "Broad Market", "US", "us-broad-market"),
    "QQQ": TickerMeta("ETF", "Tech/Nasdaq", "US", "us-megacap-tech"),
    "IWM": TickerMeta("ETF", "Small Cap", "US", "us-broad-market"),
    "EEM": TickerMeta("ETF", "Emerging Markets", "Global", "emerging-markets"),
    "XLF": TickerMeta("ETF", "Financials Sector", "US", "us-banks"),
    "XLE": TickerMeta("ETF", "Energy Sector", "US", "us-oil-gas"),
    "XLK": TickerMeta("ETF", "Tech Sector", "US", "us-megacap-tech"),
    "GLD": TickerMeta("ETF", "Gold", "Global", "gold-miners"),
    "SLV": TickerMeta("ETF", "Silver", "Global", "base-metals"),
    "EWZ": TickerMeta("ETF", "Brazil", "Brazil", "latam-broad"),
    "DIA": TickerMeta("ETF", "Broad Market", "US", "us-broad-market"),
    "ARKK": TickerMeta("ETF", "Innovation/Growth", "US", "us-growth-spec"),

    # Argentine Stocks
    "GGAL": TickerMeta("Financials", "Banking", "Argentina", "ar-banks"),
    "YPF": TickerMeta("Energy", "Oil & Gas", "Argentina", "ar-energy"),
    "PAMP": TickerMeta("Energy", "Utilities/Energy", "Argentina", "ar-energy"),
    "BBAR": TickerMeta("Financials", "Banking", "Argentina", "ar-banks"),
    "BMA": TickerMeta("Financials", "Banking", "Argentina", "ar-banks"),
    "SUPV": TickerMeta("Financials", "Banking", "Argentina", "ar-banks"),
    "TECO2": TickerMeta("Communication Services", "Telecom", "Argentina", "ar-utilities"),
    "TXAR": TickerMeta("Materials", "Steel", "Argentina", "ar-materials"),
    "ALUA": TickerMeta("Materials", "Aluminum", "Argentina", "ar-materials"),
    "CRES": TickerMeta("Real Estate", "Agriculture/Real Estate", "Argentina", "ar-agro"),
    "MIRG": TickerMeta("Consumer Discretionary", "Electronics/Auto", "Argentina", "ar-industrial"),
    "LOMA": TickerMeta("Materials", "Cement", "Argentina", "ar-materials"),
    "CEPU": TickerMeta("Utilities", "Power Generation", "Argentina", "ar-utilities"),
    "EDN": TickerMeta("Utilities", "Power Distribution", "Argentina", "ar-utilities"),
    "TGSU2": TickerMeta("Utilities", "Gas Transport", "Argentina", "ar-utilities"),
    "TGNO4": TickerMeta("Utilities", "Gas Transport", "Argentina", "ar-utilities"),
    "VALO": TickerMeta("Financials", "Brokerage", "Argentina", "ar-banks"),
    "COME": TickerMeta("Financials", "Holding/Diversified", "Argentina", "ar-diversified"),
    "BYMA": TickerMeta("Financials", "Exchange", "Argentina", "ar-banks"),
    "HARG": TickerMeta("Materials", "Cement", "Argentina", "ar-materials"),
    "AGRO": TickerMeta("Industrials", "Farm Equipment", "Argentina", "ar-agro"),
    "IRSA": TickerMeta("Real Estate", "Real Estate", "Argentina", "ar-real-estate"),
    "TRAN": TickerMeta("Utilities", "Power Transmission", "Argentina", "ar-utilities"),
    "BHIP": TickerMeta("Financials", "Banking", "Argentina", "ar-banks"),
    "CVH": TickerMeta("Communication Services", "Cable/Media", "Argentina", "ar-utilities"),
    "RICH": TickerMeta("Healthcare", "Pharma", "Argentina", "ar-healthcare"),
    "MOLA": TickerMeta("Consumer Staples", "Food/Agro", "Argentina", "ar-agro"),
    "MOLI": TickerMeta("Consumer Staples", "Food", "Argentina", "ar-consumer"),
    "LEDE": TickerMeta("Consumer Staples", "Sugar/Agro", "Argentina", "ar-agro"),
    "GCLA": TickerMeta("Communication Services", "Media", "Argentina", "ar-diversified"),
}


def get_ticker_meta(ticker: str) -> TickerMeta:
    return TICKER_META.get((ticker or "").strip().upper(), UNKNOWN_META)


def get_ticker_meta_map(tickers: Iterable[str]) -> Dict[str, TickerMeta]:
    return {t.strip().upper(): get_ticker_meta(t) for t in tickers}
