"""
Unit tests for the Gemini provider adapter.
"""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from hollow.errors import ProviderRejected, RateLimited, TransportError
from hollow.llm.base_client import InferenceProvider
from hollow.llm.gemini_client import GeminiClient, classify_http_status, extract_text
from hollow.models import CompiledPrompt

PROMPT = CompiledPrompt(text="Is 'orange' in 'I like to eat oranges'? Answer as JSON.", max_tokens=256, temperature=0.0)

GEMINI_OK = {
    "candidates": [{"content": {"parts": [{"text": '{"wordInSentence": '}, {"text": "true}"}]}}],
    "usageMetadata": {"promptTokenCount": 14, "candidatesTokenCount": 6},
}


def _session(status=200, data=None, body="", headers=None):
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.json = AsyncMock(return_value=data)
    response.text = AsyncMock(return_value=body)
    session = MagicMock()
    session.post.return_value.__aenter__ = AsyncMock(return_value=response)
    session.post.return_value.__aexit__ = AsyncMock(return_value=False)
    return session


class TestClassifyHttpStatus:
    """Test mapping of HTTP failures onto error kinds."""

    def test_rate_limited_with_retry_after(self):
        error = classify_http_status(429, "quota exceeded", "3")
        assert isinstance(error, RateLimited)
        assert error.retry_after_s == 3.0
        assert error.retryable

    def test_rate_limited_with_unparseable_retry_after(self):
        error = classify_http_status(429, "quota exceeded", "Wed, 21 Oct 2026 07:28:00 GMT")
        assert isinstance(error, RateLimited)
        assert error.retry_after_s is None

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_client_errors_are_rejections(self, status):
        error = classify_http_status(status, "API key not valid")
        assert isinstance(error, ProviderRejected)
        assert not error.retryable

    @pytest.mark.parametrize("status", [500, 502, 503])
    def test_server_errors_are_transport(self, status):
        assert isinstance(classify_http_status(status, "overloaded"), TransportError)


class TestExtractText:
    """Test candidate text extraction."""

    def test_joins_parts(self):
        assert extract_text(GEMINI_OK) == '{"wordInSentence": true}'

    def test_no_candidates(self):
        assert extract_text({"candidates": []}) == ""

    def test_blocked_prompt(self):
        with pytest.raises(ProviderRejected, match="SAFETY"):
            extract_text({"promptFeedback": {"blockReason": "SAFETY"}})


class TestGeminiClient:
    """Test GeminiClient.complete against a mocked aiohttp session."""

    def test_satisfies_provider_protocol(self):
        assert isinstance(GeminiClient(api_key="k"), InferenceProvider)

    def test_model_prefix_is_stripped(self):
        assert GeminiClient(model="google-gla:gemini-2.5-flash").model == "gemini-2.5-flash"

    def test_build_payload(self):
        payload = GeminiClient(api_key="k").build_payload(PROMPT)

        assert payload["contents"][0]["parts"][0]["text"] == PROMPT.text
        assert payload["generationConfig"]["maxOutputTokens"] == 256
        assert payload["generationConfig"]["temperature"] == 0.0
        assert payload["generationConfig"]["responseMimeType"] == "application/json"

    @pytest.mark.asyncio
    async def test_complete_success(self):
        session = _session(data=GEMINI_OK)
        client = GeminiClient(api_key="test-key", session=session)

        raw = await client.complete(PROMPT, timeout_s=5.0)

        assert raw.text == '{"wordInSentence": true}'
        assert raw.input_tokens == 14
        assert raw.output_tokens == 6
        assert raw.model == "gemini-2.5-flash"
        args, kwargs = session.post.call_args
        assert args[0].endswith("/gemini-2.5-flash:generateContent")
        assert kwargs["params"] == {"key": "test-key"}
        assert kwargs["json"] == client.build_payload(PROMPT)
        assert kwargs["timeout"].total == 5.0
        session.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_complete_rate_limited(self):
        session = _session(status=429, body="quota", headers={"Retry-After": "2"})
        client = GeminiClient(api_key="test-key", session=session)

        with pytest.raises(RateLimited) as exc_info:
            await client.complete(PROMPT, timeout_s=5.0)

        assert exc_info.value.retry_after_s == 2.0

    @pytest.mark.asyncio
    async def test_complete_rejected(self):
        client = GeminiClient(api_key="bad", session=_session(status=403, body="forbidden"))

        with pytest.raises(ProviderRejected):
            await client.complete(PROMPT, timeout_s=5.0)

    @pytest.mark.asyncio
    async def test_connection_error_is_transport(self):
        session = MagicMock()
        session.post.side_effect = aiohttp.ClientConnectionError("connection refused")
        client = GeminiClient(api_key="test-key", session=session)

        with pytest.raises(TransportError, match="connection"):
            await client.complete(PROMPT, timeout_s=5.0)

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        session = _session(data=GEMINI_OK)
        client = GeminiClient(session=session)

        with pytest.raises(ProviderRejected, match="GEMINI_API_KEY"):
            await client.complete(PROMPT, timeout_s=5.0)
        session.post.assert_not_called()
