# routers/insights_routes.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from middleware.rate_limit import INSIGHTS_LIMIT, limiter
from schemas.insights import CorrelationInsightResponse
from schemas.portfolio import GroupingRequest
from services.ai.correlation_insights_service import InsightsResponseError, analyze_correlation
from services.ai.llm_service import LLMService, LLMServiceError, get_llm_service
from services.current_user import get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter()


def _llm() -> LLMService:
    try:
        return get_llm_service()
    except LLMServiceError as e:
        logger.error("llm_not_configured error=%s", e)
        raise HTTPException(status_code=503, detail="AI service not configured")


@router.post("/correlation", response_model=CorrelationInsightResponse)
@limiter.limit(INSIGHTS_LIMIT)
async def correlation_insight(
    request: Request,
    body: GroupingRequest,
    user_id: str = Depends(get_current_user_id),
    llm: LLMService = Depends(_llm),
):
    try:
        return await analyze_correlation(body.portfolio, llm)
    except InsightsResponseError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except LLMServiceError as e:
        logger.warning("correlation_insight_upstream_failed error=%s", e)
        raise HTTPException(status_code=502, detail="AI provider unavailable. Please try again.")
