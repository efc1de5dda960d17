from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from schemas.portfolio import GroupAllocation

Rating = Literal["Well Diversified", "Moderate Risk", "Concentrated", "Highly Concentrated"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CorrelationInsight(_CamelModel):
    """Shape the model must return; anything else is rejected."""

    concentration_score: float = Field(ge=0, le=100)  # 0 = fully concentrated, 100 = diversified
    rating: Rating
    hidden_risks: List[str]
    decorrelation_suggestions: List[str]
    summary: str


class CorrelationGroups(_CamelModel):
    by_sector: List[GroupAllocation]
    by_country: List[GroupAllocation]
    by_correlation_group: List[GroupAllocation]


class CorrelationInsightResponse(CorrelationInsight):
    groups: CorrelationGroups
