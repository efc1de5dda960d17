"""
Canonical portfolio shapes shared by every provider, the aggregator and the
grouping/insight endpoints.

Python attributes are snake_case; the JSON wire shape is camelCase
(``averagePrice``, ``pnlPercent`` ...) so existing frontends keep working.
"""
from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

AssetCategory = Literal["stock", "cedear", "crypto", "cash"]
Currency = Literal["USD", "ARS"]
Provider = Literal["iol", "ppi", "binance"]
TimePeriod = Literal["1D", "1W", "1M", "1Y", "5Y", "ALL"]

ASSET_CATEGORIES: tuple[AssetCategory, ...] = ("stock", "cedear", "crypto", "cash")
CURRENCIES: tuple[Currency, ...] = ("USD", "ARS")
PROVIDERS: tuple[Provider, ...] = ("iol", "ppi", "binance")


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PortfolioAsset(_CamelModel):
    """One position as reported by a provider, mapped to the canonical shape."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str
    ticker: str
    name: str
    category: AssetCategory
    currency: Currency
    quantity: float = Field(ge=0.0)
    average_price: float = Field(default=0.0, ge=0.0)
    current_price: float = Field(default=0.0, ge=0.0)
    current_value: float = 0.0
    pnl: float = 0.0
    pnl_percent: float = 0.0
    allocation: Optional[float] = None
    locked: Optional[float] = None
    source: Optional[Provider] = None

    # False when the provider does not report a cost basis (e.g. spot
    # exchange balances). When omitted it follows average_price > 0.
    has_cost_basis: bool = False

    @model_validator(mode="before")
    @classmethod
    def _default_cost_basis(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "has_cost_basis" in data or "hasCostBasis" in data:
            return data
        avg = data.get("average_price", data.get("averagePrice"))
        try:
            has_basis = float(avg or 0) > 0
        except (TypeError, ValueError):
            return data
        return {**data, "has_cost_basis": has_basis}


class LiveQuote(_CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    price: float
    change_percent: Optional[float] = None
    previous_close: Optional[float] = None
    currency: Optional[Currency] = None


class PortfolioRow(PortfolioAsset):
    """Aggregated position: provider data + live quote + display currency."""

    display_price: float = 0.0
    display_avg_price: float = 0.0
    display_value: float = 0.0
    display_pnl: float = 0.0
    allocation: float = 0.0
    daily_change: Optional[float] = None
    has_live_quote: bool = False
    period_change_percent: Optional[float] = None


class ProviderStatus(_CamelModel):
    provider: Provider
    connected: bool
    expired: bool = False
    error: Optional[str] = None
    asset_count: int = 0


class AggregatedPortfolio(_CamelModel):
    assets: List[PortfolioRow]
    providers: List[ProviderStatus]
    display_currency: Currency
    exchange_rate: float
    rate_is_live: bool
    total_value: float
    as_of: int


class GroupAllocation(_CamelModel):
    name: str
    tickers: List[str]
    total_value: float
    allocation: float
    is_concentrated: bool


class CorrelationMetrics(_CamelModel):
    by_sector: List[GroupAllocation] = Field(default_factory=list)
    by_country: List[GroupAllocation] = Field(default_factory=list)
    by_correlation_group: List[GroupAllocation] = Field(default_factory=list)
    total_value: float = 0.0
    concentrated_groups: int = 0


class GroupingAssetIn(_CamelModel):
    """Loose input row for grouping/insight requests (validated on ingress)."""

    ticker: str = Field(min_length=1)
    name: str = ""
    category: str = ""
    currency: str = "USD"
    quantity: float = Field(ge=0.0)
    average_price: float = Field(default=0.0, ge=0.0)
    current_price: float = Field(default=0.0, ge=0.0)
    current_value: float = Field(ge=0.0)
    pnl: float = 0.0
    pnl_percent: float = 0.0
    allocation: float = Field(default=0.0, ge=0.0)


class GroupingRequest(_CamelModel):
    portfolio: List[GroupingAssetIn] = Field(min_length=1)
