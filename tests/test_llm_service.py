import asyncio
import unittest

import httpx

from services.ai.llm_service import LLMConfig, LLMService, LLMServiceError, is_transient


def _status_error(code):
    request = httpx.Request("POST", "https://llm.test/v1")
    return httpx.HTTPStatusError("err", request=request, response=httpx.Response(code, request=request))


class _ScriptedClient:
    """Raises the queued errors in order, then returns `text`."""

    def __init__(self, errors, text='{"ok": true}'):
        self.errors = list(errors)
        self.text = text
        self.calls = 0

    async def generate_json(self, *, system, user):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.text


def _service(client, attempts=3):
    return LLMService(LLMConfig(max_attempts=attempts, retry_base_s=0), client=client)


class RetryPolicyTests(unittest.TestCase):
    def test_is_transient(self):
        self.assertTrue(is_transient(_status_error(429)))
        self.assertTrue(is_transient(_status_error(503)))
        self.assertFalse(is_transient(_status_error(400)))
        self.assertTrue(is_transient(httpx.ReadTimeout("slow")))
        self.assertFalse(is_transient(ValueError("bad json")))

    def test_transient_then_success(self):
        client = _ScriptedClient([_status_error(503), httpx.ConnectTimeout("t")])
        result = asyncio.run(_service(client).generate_json(system="s", user="u"))
        self.assertEqual(result, {"ok": True})
        self.assertEqual(client.calls, 3)

    def test_client_error_not_retried(self):
        client = _ScriptedClient([_status_error(401)])
        with self.assertRaises(LLMServiceError):
            asyncio.run(_service(client).generate_text(system="s", user="u"))
        self.assertEqual(client.calls, 1)

    def test_exhausted_retries(self):
        client = _ScriptedClient([_status_error(429)] * 5)
        with self.assertRaises(LLMServiceError):
            asyncio.run(_service(client).generate_text(system="s", user="u"))
        self.assertEqual(client.calls, 3)


class ParsingTests(unittest.TestCase):
    def test_code_fences_stripped(self):
        self.assertEqual(LLMService.strip_code_fences('```json\n{"a": 1}\n```'), '{"a": 1}')
        svc = _service(_ScriptedClient([]))
        self.assertEqual(svc.parse_json('```\n{"a": 1}\n```'), {"a": 1})

    def test_missing_key_is_config_error(self):
        with self.assertRaises(LLMServiceError):
            LLMService(LLMConfig(provider="anthropic", anthropic_api_key=""))
        with self.assertRaises(LLMServiceError):
            LLMService(LLMConfig(provider="openai", openai_api_key=""))


if __name__ == "__main__":
    unittest.main()
