# routers/market_routes.py
from fastapi import APIRouter, Depends, HTTPException, Request

from config.settings import get_settings
from middleware.rate_limit import QUOTE_LIMIT, limiter
from schemas.market import ExchangeRateOut, QuoteRequest, QuoteResponse
from services.current_user import get_current_user_id
from services.market.exchange_rate_service import ExchangeRateService, get_exchange_rate_service
from services.market.yahoo_quote_service import YahooQuoteService, get_yahoo_service

router = APIRouter()


@router.get("/exchange-rate", response_model=ExchangeRateOut)
async def exchange_rate(rates: ExchangeRateService = Depends(get_exchange_rate_service)):
    """USD/ARS blue sell rate; 502 when neither upstream nor cache has a value."""
    rate = await rates.get_exchange_rate()
    if rate is None:
        raise HTTPException(status_code=502, detail="Could not fetch exchange rate")
    return ExchangeRateOut(rate=rate.rate, updated_at=rate.updated_at, is_live=rate.is_live)


@router.post("/quotes", response_model=QuoteResponse)
@limiter.limit(QUOTE_LIMIT)
async def batch_quotes(
    request: Request,
    body: QuoteRequest,
    user_id: str = Depends(get_current_user_id),
    yahoo: YahooQuoteService = Depends(get_yahoo_service),
):
    quotes = await yahoo.get_quotes_batched(
        ((i.ticker, i.category) for i in body.items),
        get_settings().quote_batch_size,
    )
    return QuoteResponse(quotes=quotes)
