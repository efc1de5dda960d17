# services/ai/llm_service.py
from __future__ import annotations

import os
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES = {429, 500, 502, 503, 504}
MAX_ATTEMPTS = 3


class LLMServiceError(Exception):
    """LLM provider misconfigured, unreachable, or returned unusable output."""


# ============================================================================
# PUBLIC INTERFACE
# ============================================================================

class LLMClient(Protocol):
    async def generate_json(self, *, system: str, user: str) -> str:
        """Return raw text that should be JSON."""


@dataclass
class LLMConfig:
    provider: str = "anthropic"  # openai | anthropic | cloud
    temperature: float = 0.3

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_timeout_s: float = 60.0

    # Anthropic
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-sonnet-latest"
    anthropic_timeout_s: float = 60.0

    # Cloud gateway (optional)
    cloud_base_url: str = ""
    cloud_api_key: str = ""
    cloud_timeout_s: float = 60.0

    # Retry (transient failures only)
    max_attempts: int = MAX_ATTEMPTS
    retry_base_s: float = 1.0

    @staticmethod
    def from_env() -> "LLMConfig":
        provider = (os.getenv("AI_PROVIDER") or "anthropic").lower()
        return LLMConfig(
            provider=provider,
            temperature=float(os.getenv("AI_TEMPERATURE", "0.3")),

            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_model=os.getenv("OPENAI_MODEL") or "gpt-4o-mini",
            openai_timeout_s=float(os.getenv("OPENAI_TIMEOUT_S", "60")),

            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            anthropic_model=os.getenv("ANTHROPIC_MODEL") or "claude-3-5-sonnet-latest",
            anthropic_timeout_s=float(os.getenv("ANTHROPIC_TIMEOUT_S", "60")),

            cloud_base_url=os.getenv("CLOUD_LLM_BASE_URL", ""),
            cloud_api_key=os.getenv("CLOUD_LLM_API_KEY", ""),
            cloud_timeout_s=float(os.getenv("CLOUD_LLM_TIMEOUT_S", "60")),

            max_attempts=int(os.getenv("AI_MAX_ATTEMPTS", str(MAX_ATTEMPTS))),
            retry_base_s=float(os.getenv("AI_RETRY_BASE_S", "1.0")),
        )


# ============================================================================
# PROVIDER CLIENTS
# ============================================================================

class OpenAIClient:
    def __init__(self, api_key: str, model: str, temperature: float, timeout_s: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout_s = timeout_s

    async def generate_json(self, *, system: str, user: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            r = await client.post(
                "https://api.openai.com/v1/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    "temperature": self.temperature,
                    "response_format": {"type": "json_object"},
                },
            )
            r.raise_for_status()
            data = r.json()
            return data["choices"][0]["message"]["content"]


class AnthropicClient:
    def __init__(self, api_key: str, model: str, temperature: float, timeout_s: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout_s = timeout_s

    async def generate_json(self, *, system: str, user: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            r = await client.post(
                "https://api.anthropic.com/v1/messages",
                headers={
                    "x-api-key": self.api_key,
                    "Content-Type": "application/json",
                    "anthropic-version": "2023-06-01",
                },
                json={
                    "model": self.model,
                    "max_tokens": 2000,
                    "system": system,
                    "messages": [{"role": "user", "content": user}],
                    "temperature": self.temperature,
                },
            )
            r.raise_for_status()
            data = r.json()
            return data["content"][0]["text"]


class CloudLLMClient:
    def __init__(self, base_url: str, api_key: str, timeout_s: float = 60.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s

    async def generate_json(self, *, system: str, user: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            r = await client.post(
                f"{self.base_url}/v1/generate",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={"system": system, "user": user},
            )
            r.raise_for_status()
            data = r.json()
            return data["text"]


# ============================================================================
# RETRY POLICY
# ============================================================================

def is_transient(exc: BaseException) -> bool:
    """429/5xx and network timeouts are retried; 4xx and parse errors are not."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRY_STATUS_CODES
    return isinstance(exc, (httpx.TimeoutException, httpx.NetworkError))


# ============================================================================
# LLM SERVICE (reusable everywhere)
# ============================================================================

class LLMService:
    def __init__(self, cfg: Optional[LLMConfig] = None, client: Optional[LLMClient] = None):
        self.cfg = cfg or LLMConfig.from_env()
        self.client: LLMClient = client or self._resolve_client(self.cfg)

    def _resolve_client(self, cfg: LLMConfig) -> LLMClient:
        p = (cfg.provider or "anthropic").lower()

        if p == "openai":
            if not cfg.openai_api_key:
                raise LLMServiceError("Missing OPENAI_API_KEY")
            return OpenAIClient(
                api_key=cfg.openai_api_key,
                model=cfg.openai_model,
                temperature=cfg.temperature,
                timeout_s=cfg.openai_timeout_s,
            )

        if p == "cloud":
            if not cfg.cloud_base_url or not cfg.cloud_api_key:
                raise LLMServiceError("Missing CLOUD_LLM_BASE_URL or CLOUD_LLM_API_KEY")
            return CloudLLMClient(
                base_url=cfg.cloud_base_url,
                api_key=cfg.cloud_api_key,
                timeout_s=cfg.cloud_timeout_s,
            )

        if not cfg.anthropic_api_key:
            raise LLMServiceError("Missing ANTHROPIC_API_KEY")
        return AnthropicClient(
            api_key=cfg.anthropic_api_key,
            model=cfg.anthropic_model,
            temperature=cfg.temperature,
            timeout_s=cfg.anthropic_timeout_s,
        )

    # ---- helpers used by many callers ----

    @staticmethod
    def strip_code_fences(text: str) -> str:
        t = (text or "").strip()
        if t.startswith("```"):
            lines = t.split("\n")
            # drop first fence line
            lines = lines[1:]
            # drop last fence line if present
            if lines and lines[-1].strip().startswith("```"):
                lines = lines[:-1]
            t = "\n".join(lines).strip()
        return t

    def parse_json(self, text: str) -> Dict[str, Any]:
        t = self.strip_code_fences(text)
        return json.loads(t)

    def _log_retry(self, retry_state) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "llm_retry attempt=%d error=%s",
            retry_state.attempt_number, type(exc).__name__ if exc else None,
        )

    async def generate_text(self, *, system: str, user: str) -> str:
        """Raw completion, retried on transient upstream failures only."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max(1, self.cfg.max_attempts)),
                wait=wait_exponential(multiplier=self.cfg.retry_base_s, min=self.cfg.retry_base_s),
                retry=retry_if_exception(is_transient),
                before_sleep=self._log_retry,
                reraise=True,
            ):
                with attempt:
                    return await self.client.generate_json(system=system, user=user)
        except httpx.HTTPStatusError as e:
            raise LLMServiceError(f"LLM provider returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise LLMServiceError(f"LLM request failed: {type(e).__name__}") from e
        except RetryError as e:
            raise LLMServiceError("LLM retries exhausted") from e
        raise LLMServiceError("LLM returned no result")

    async def generate_json(self, *, system: str, user: str) -> Dict[str, Any]:
        raw = await self.generate_text(system=system, user=user)
        return self.parse_json(raw)


# Optional: shared singleton
_llm_singleton: Optional[LLMService] = None

def get_llm_service() -> LLMService:
    global _llm_singleton
    if _llm_singleton is None:
        _llm_singleton = LLMService()
    return _llm_singleton
