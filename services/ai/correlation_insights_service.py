# services/ai/correlation_insights_service.py
from __future__ import annotations

import json
import logging
from typing import List, Optional, Sequence

from pydantic import ValidationError

from schemas.insights import CorrelationGroups, CorrelationInsight, CorrelationInsightResponse
from schemas.portfolio import CorrelationMetrics, GroupAllocation, GroupingAssetIn
from services.ai.llm_service import LLMService, get_llm_service
from services.portfolio.correlation_service import CONCENTRATION_THRESHOLD, group_portfolio

logger = logging.getLogger(__name__)


class InsightsResponseError(Exception):
    """The model answered, but not with a usable insight."""


SYSTEM_PROMPT = """You are a portfolio diversification analyst specializing in correlation and concentration risk for Argentine retail investors.

Your job is to analyze groupings of portfolio positions by sector, country, and correlation clusters to identify hidden concentration risks that simple category-level analysis would miss.

Key context:
- CEDEARs provide implicit USD exposure even when denominated in ARS.
- Argentine bank stocks (GGAL, BMA, BBAR, SUPV) are highly correlated; holding several adds hidden concentration.
- Holding QQQ plus individual Nasdaq stocks double-counts tech exposure.
- Semiconductor stocks (NVDA, AMD, TSM, AVGO, etc.) move together; combined >30% is a concentration risk.
- Any single correlation group above 30% allocation is a concentration flag.
- Country risk: more than 60% in one country (especially Argentina or China) is notable.

IMPORTANT: Respond with ONLY valid JSON matching this exact structure (no markdown, no code blocks, no extra text):
{
  "concentrationScore": <number 0-100, where 0 = maximally concentrated, 100 = perfectly diversified>,
  "rating": "Well Diversified" | "Moderate Risk" | "Concentrated" | "Highly Concentrated",
  "hiddenRisks": ["risk description 1", "risk description 2", ...],
  "decorrelationSuggestions": ["suggestion 1", "suggestion 2", ...],
  "summary": "2-3 sentence assessment of the portfolio's correlation profile"
}"""


def _format_groups(groups: Sequence[GroupAllocation]) -> str:
    lines: List[str] = []
    for g in groups:
        flag = " [CONCENTRATED]" if g.is_concentrated else ""
        lines.append(f"  - {g.name}: {g.allocation:.1f}% ({', '.join(g.tickers)}){flag}")
    return "\n".join(lines)


def build_user_prompt(position_count: int, metrics: CorrelationMetrics) -> str:
    return f"""Analyze this portfolio for hidden correlation and concentration risks.

## Portfolio ({position_count} positions, total value: ${metrics.total_value:.2f})

## By Sector
{_format_groups(metrics.by_sector)}

## By Country
{_format_groups(metrics.by_country)}

## By Correlation Group (tickers that move together)
{_format_groups(metrics.by_correlation_group)}

## Flags
- Concentrated groups (>{CONCENTRATION_THRESHOLD:.0f}%): {metrics.concentrated_groups}

Provide your analysis as JSON."""


async def analyze_correlation(
    portfolio: Sequence[GroupingAssetIn],
    llm: Optional[LLMService] = None,
) -> CorrelationInsightResponse:
    """
    Group the portfolio, ask the model for a narrative assessment, validate
    its answer. Raises LLMServiceError (upstream) or InsightsResponseError
    (bad output).
    """
    metrics = group_portfolio(portfolio)
    llm = llm or get_llm_service()

    raw = await llm.generate_text(system=SYSTEM_PROMPT, user=build_user_prompt(len(portfolio), metrics))

    try:
        parsed = llm.parse_json(raw)
    except json.JSONDecodeError as e:
        logger.warning("correlation_insight_unparsable length=%d", len(raw or ""))
        raise InsightsResponseError("AI returned an invalid response. Please try again.") from e

    try:
        insight = CorrelationInsight.model_validate(parsed)
    except ValidationError as e:
        logger.warning("correlation_insight_invalid errors=%d", e.error_count())
        raise InsightsResponseError("AI returned an unexpected format. Please try again.") from e

    return CorrelationInsightResponse(
        **insight.model_dump(),
        groups=CorrelationGroups(
            by_sector=metrics.by_sector,
            by_country=metrics.by_country,
            by_correlation_group=metrics.by_correlation_group,
        ),
    )
