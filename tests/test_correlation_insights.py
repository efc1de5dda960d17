import asyncio
import json
import unittest

from schemas.portfolio import GroupingAssetIn
from services.ai.correlation_insights_service import (
    InsightsResponseError,
    analyze_correlation,
    build_user_prompt,
)
from services.ai.llm_service import LLMConfig, LLMService
from services.portfolio.correlation_service import group_portfolio

VALID = {
    "concentrationScore": 35,
    "rating": "Concentrated",
    "hiddenRisks": ["Argentine banks move together"],
    "decorrelationSuggestions": ["Add non-financial exposure"],
    "summary": "Heavily tilted to Argentine financials.",
}


class _FixedClient:
    def __init__(self, text):
        self.text = text
        self.prompts = []

    async def generate_json(self, *, system, user):
        self.prompts.append(user)
        return self.text


def _llm(text):
    client = _FixedClient(text)
    return LLMService(LLMConfig(retry_base_s=0), client=client), client


PORTFOLIO = [
    GroupingAssetIn(ticker="GGAL", quantity=10, current_value=600),
    GroupingAssetIn(ticker="BMA", quantity=5, current_value=300),
    GroupingAssetIn(ticker="AAPL", quantity=1, current_value=100),
]


class CorrelationInsightTests(unittest.TestCase):
    def test_prompt_marks_concentrated_groups(self):
        prompt = build_user_prompt(len(PORTFOLIO), group_portfolio(PORTFOLIO))
        self.assertIn("3 positions", prompt)
        self.assertIn("ar-banks: 90.0% (GGAL, BMA) [CONCENTRATED]", prompt)
        self.assertIn("(AAPL)\n", prompt)

    def test_valid_answer_includes_groups(self):
        llm, client = _llm("```json\n" + json.dumps(VALID) + "\n```")
        result = asyncio.run(analyze_correlation(PORTFOLIO, llm))
        self.assertEqual(result.rating, "Concentrated")
        self.assertEqual(result.concentration_score, 35)
        self.assertEqual(result.groups.by_correlation_group[0].name, "ar-banks")
        self.assertEqual(len(client.prompts), 1)
        dumped = result.model_dump(by_alias=True)
        self.assertIn("hiddenRisks", dumped)
        self.assertIn("byCorrelationGroup", dumped["groups"])

    def test_unparsable_answer(self):
        llm, _ = _llm("I think your portfolio is fine")
        with self.assertRaises(InsightsResponseError):
            asyncio.run(analyze_correlation(PORTFOLIO, llm))

    def test_wrong_shape_rejected(self):
        bad = dict(VALID, rating="Totally Fine")
        llm, _ = _llm(json.dumps(bad))
        with self.assertRaises(InsightsResponseError):
            asyncio.run(analyze_correlation(PORTFOLIO, llm))

        out_of_range = dict(VALID, concentrationScore=140)
        llm, _ = _llm(json.dumps(out_of_range))
        with self.assertRaises(InsightsResponseError):
            asyncio.run(analyze_correlation(PORTFOLIO, llm))


if __name__ == "__main__":
    unittest.main()
