# services/brokers/errors.py
from __future__ import annotations

from typing import Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}


class BrokerError(Exception):
    """Domain-level error for broker clients."""

    def __init__(self, message: str, *, provider: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class BrokerAuthError(BrokerError):
    """Session expired or credentials rejected. The user has to reconnect."""


class BrokerTransientError(BrokerError):
    """Rate limit, 5xx or network timeout."""


class IOLTokenExpiredError(BrokerAuthError):
    def __init__(self) -> None:
        super().__init__("IOL session expired. Please reconnect your account.", provider="iol")


class PPITokenExpiredError(BrokerAuthError):
    def __init__(self) -> None:
        super().__init__("PPI session expired. Please reconnect your account.", provider="ppi")


class BinanceAuthError(BrokerAuthError):
    def __init__(self, message: str = "Invalid Binance API credentials") -> None:
        super().__init__(message, provider="binance")


def raise_for_broker_status(resp: httpx.Response, provider: str) -> None:
    if resp.is_success:
        return
    status = resp.status_code
    msg = f"{provider.upper()} API error: {status}"
    if status in TRANSIENT_STATUS_CODES:
        raise BrokerTransientError(msg, provider=provider, status_code=status)
    raise BrokerError(msg, provider=provider, status_code=status)


def transient_from_httpx(exc: httpx.HTTPError, provider: str) -> BrokerTransientError:
    return BrokerTransientError(f"{provider.upper()} request failed: {type(exc).__name__}", provider=provider)


def broker_retrying(max_attempts: int = 3, base_s: float = 0.5) -> AsyncRetrying:
    """Retry policy for broker calls: transient errors only, exponential backoff."""
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=base_s, min=base_s),
        retry=retry_if_exception_type(BrokerTransientError),
        reraise=True,
    )
