"""Gemini generateContent adapter implementing the InferenceProvider protocol."""

from __future__ import annotations

import asyncio
import os
import time
from typing import Any, Dict, Optional

import aiohttp

from hollow.errors import HollowError, ProviderRejected, RateLimited, TransportError
from hollow.models.invocation import CompiledPrompt, RawResponse, truncate_snippet

_REJECT_CODES = {400, 401, 403, 404}


def classify_http_status(status: int, body: str, retry_after: Optional[str] = None) -> HollowError:
    """Map a non-200 Gemini response onto the provider error taxonomy."""
    snippet = truncate_snippet(body, 300)
    if status == 429:
        delay: Optional[float] = None
        if retry_after:
            try:
                delay = float(retry_after)
            except ValueError:
                delay = None
        return RateLimited(f"Gemini API rate limited (429): {snippet}", retry_after_s=delay)
    if status in _REJECT_CODES:
        return ProviderRejected(f"Gemini API rejected the request ({status}): {snippet}")
    return TransportError(f"Gemini API error {status}: {snippet}")


def extract_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback") or {}
        if feedback.get("blockReason"):
            raise ProviderRejected(f"Gemini blocked the prompt: {feedback['blockReason']}")
        return ""
    parts = candidates[0].get("content", {}).get("parts", [])
    return "".join(str(p.get("text") or "") for p in parts).strip()


class GeminiClient:
    """Calls Gemini generateContent once per ``complete``.

    Retries are left to the engine's RetryController. The API key is read
    from GEMINI_API_KEY unless passed explicitly.
    """

    _BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        model: str = "gemini-2.5-flash",
        api_key: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.model = model.split(":", 1)[-1]
        self._api_key = api_key
        self._session = session

    def _resolve_key(self) -> str:
        api_key = self._api_key or os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise ProviderRejected("GEMINI_API_KEY not set; cannot call Gemini.")
        return api_key

    def build_payload(self, prompt: CompiledPrompt) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt.text}]}],
            "generationConfig": {
                "temperature": prompt.temperature,
                "maxOutputTokens": prompt.max_tokens,
                "responseMimeType": "application/json",
            },
        }

    async def complete(self, prompt: CompiledPrompt, *, timeout_s: float) -> RawResponse:
        url = f"{self._BASE_URL}/{self.model}:generateContent"
        params = {"key": self._resolve_key()}
        started = time.monotonic()
        session = self._session or aiohttp.ClientSession()
        try:
            async with session.post(
                url,
                params=params,
                json=self.build_payload(prompt),
                timeout=aiohttp.ClientTimeout(total=timeout_s),
            ) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise classify_http_status(resp.status, body, resp.headers.get("Retry-After"))
                data = await resp.json()
        except asyncio.TimeoutError as exc:
            raise TransportError(f"Gemini call timed out after {timeout_s:.1f}s") from exc
        except aiohttp.ClientError as exc:
            raise TransportError(f"Gemini connection error: {exc}") from exc
        finally:
            if self._session is None:
                await session.close()

        usage = data.get("usageMetadata") or {}
        return RawResponse(
            text=extract_text(data),
            latency_ms=int((time.monotonic() - started) * 1000),
            input_tokens=int(usage.get("promptTokenCount") or 0),
            output_tokens=int(usage.get("candidatesTokenCount") or 0),
            model=self.model,
        )
