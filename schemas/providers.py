"""
Ingress schemas for raw broker payloads (IOL, PPI, Binance).

Every field has a default and nulls collapse to that default, so mapping code
never has to ask whether a field exists. Wrong types still fail validation at
the boundary.
"""
from __future__ import annotations

from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel, to_pascal


def _none_to_zero(v: Any) -> Any:
    return 0.0 if v is None else v


def _none_to_empty(v: Any) -> Any:
    return "" if v is None else v


Num = Annotated[float, BeforeValidator(_none_to_zero)]
Text = Annotated[str, BeforeValidator(_none_to_empty)]


# ---------------------------------------------------------------------------
# IOL (InvertirOnline)
# ---------------------------------------------------------------------------

class _IOLModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class IOLToken(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: str = "bearer"
    expires_in: int = 0
    refresh_token: str = ""
    issued_at: Optional[float] = None  # epoch seconds, stamped locally


class IOLTitulo(_IOLModel):
    simbolo: Text = ""
    descripcion: Text = ""
    pais: Text = ""
    mercado: Text = ""
    tipo: Text = ""
    plazo: Text = ""
    moneda: Text = ""


class IOLPortfolioItem(_IOLModel):
    cantidad: Num = 0.0
    comprometido: Num = 0.0
    variacion_diaria: Num = 0.0
    ultimo_precio: Num = 0.0
    ppc: Num = 0.0
    ganancia_porcentaje: Num = 0.0
    ganancia_dinero: Num = 0.0
    valorizado: Num = 0.0
    titulo: IOLTitulo = Field(default_factory=IOLTitulo)


class IOLPortfolio(_IOLModel):
    pais: Text = ""
    activos: List[IOLPortfolioItem] = Field(default_factory=list)
    total_en_pesos: Num = 0.0
    total_en_dolares: Num = 0.0


class IOLQuote(_IOLModel):
    ultimo_precio: Num = 0.0
    variacion_porcentual: Num = 0.0
    cierre_anterior: Num = 0.0
    apertura: Num = 0.0
    maximo: Num = 0.0
    minimo: Num = 0.0
    moneda: Text = ""


# ---------------------------------------------------------------------------
# PPI (Portfolio Personal Inversiones)
# ---------------------------------------------------------------------------

class _PPIModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True, extra="ignore")


class PPICredentials(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    authorized_client: str = ""
    client_key: str = ""
    api_key: str
    api_secret: Optional[str] = None
    access_token: str = ""
    refresh_token: str = ""


class PPILoginResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    access_token: str
    refresh_token: str = ""
    creation_date: Optional[str] = None
    expiration_date: Optional[str] = None


class PPIPosition(_PPIModel):
    ticker: Text = ""
    description: Text = ""
    currency: Text = ""
    price: Num = 0.0
    quantity: Num = 0.0
    amount: Num = 0.0
    average_price: Num = 0.0
    pnl: Num = Field(default=0.0, alias="PnL")
    pnl_percentage: Num = Field(default=0.0, alias="PnLPercentage")
    instrument_type: Text = ""
    market: Text = ""
    settlement: Text = ""


class PPIBalance(_PPIModel):
    currency: Text = ""
    settlement: Text = ""
    amount: Num = 0.0
    available: Num = 0.0
    committed: Num = 0.0


class PPIBalancesAndPositions(_PPIModel):
    positions: List[PPIPosition] = Field(default_factory=list)
    cash_balances: List[PPIBalance] = Field(default_factory=list)


class PPIQuote(_PPIModel):
    ticker: Text = ""
    last: Num = 0.0
    open: Num = 0.0
    high: Num = 0.0
    low: Num = 0.0
    close: Num = 0.0
    volume: Num = 0.0
    change: Num = 0.0  # daily change %
    date: Text = ""


# ---------------------------------------------------------------------------
# Binance
# ---------------------------------------------------------------------------

class BinanceCredentials(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    api_key: str
    api_secret: str


class BinanceBalance(BaseModel):
    model_config = ConfigDict(extra="ignore")

    asset: Text = ""
    free: Num = 0.0
    locked: Num = 0.0


class BinanceAccountInfo(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    can_trade: bool = False
    account_type: Text = ""
    update_time: int = 0
    balances: List[BinanceBalance] = Field(default_factory=list)


class BinanceTickerPrice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    symbol: Text = ""
    price: Num = 0.0


class BinanceAsset(BaseModel):
    """A priced, non-zero Binance balance (after the portfolio fetch)."""

    asset: str
    free: float
    locked: float
    total: float
    price: float
    usd_value: float
