# ABOUTME: Async HTTP client for the Gemini generateContent REST endpoint
# ABOUTME: Serves as the semantic-labeling oracle for the scene planner (no retries)
from __future__ import annotations

import logging

import httpx

import config

logger = logging.getLogger("reading-companion.gemini")

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
REQUEST_TIMEOUT = 30.0


class GeminiError(RuntimeError):
    pass


class GeminiClient:
    """Async client for Gemini text generation."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = GEMINI_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or config.GEMINI_API_KEY
        self.model = model or config.GEMINI_MODEL
        self.base_url = base_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=10.0),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def generate(self, prompt: str) -> str:
        """Send a single-turn prompt and return the first candidate's text."""
        if not self.api_key:
            raise GeminiError("GEMINI_API_KEY is not configured")

        client = await self._get_client()
        resp = await client.post(
            f"/models/{self.model}:generateContent",
            params={"key": self.api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        if resp.status_code in (401, 403):
            raise GeminiError("Invalid or missing GEMINI_API_KEY")
        if resp.status_code == 429:
            raise GeminiError("Gemini API rate limit exceeded")
        resp.raise_for_status()

        data = resp.json()
        candidates = data.get("candidates") or []
        if not candidates:
            raise GeminiError("Gemini response has no candidates")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text:
            raise GeminiError("Empty response from Gemini API")

        logger.debug("Gemini returned %d chars", len(text))
        return text
