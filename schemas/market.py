from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from schemas.portfolio import AssetCategory, LiveQuote


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExchangeRateOut(_CamelModel):
    rate: float
    updated_at: Optional[str] = None
    is_live: bool = True


class QuoteItem(_CamelModel):
    ticker: str = Field(min_length=1, max_length=20)
    category: AssetCategory = "stock"


class QuoteRequest(_CamelModel):
    items: List[QuoteItem] = Field(min_length=1, max_length=50)


class QuoteResponse(_CamelModel):
    quotes: Dict[str, Optional[LiveQuote]]
