# ABOUTME: Async HTTP client for the Google Cloud Text-to-Speech REST API
# ABOUTME: Synthesizes paragraph narration as MP3 with retry on 5xx/timeouts
from __future__ import annotations

import asyncio
import base64
import logging

import httpx

import config

logger = logging.getLogger("reading-companion.tts")

TTS_BASE_URL = "https://texttospeech.googleapis.com/v1"
REQUEST_TIMEOUT = 30.0
MAX_RETRIES = 3
BACKOFF_SECS = [1, 2, 4]

DEFAULT_VOICE = "en-US-Standard-C"
DEFAULT_LANGUAGE = "en-US"
AUDIO_MIME_TYPE = "audio/mpeg"


class TTSError(RuntimeError):
    pass


def to_data_url(audio: bytes, mime_type: str = AUDIO_MIME_TYPE) -> str:
    """Encode audio bytes as a data: URL for an HTML audio element."""
    return f"data:{mime_type};base64,{base64.b64encode(audio).decode('ascii')}"


class TTSClient:
    """Async client for Google Cloud TTS."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = TTS_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        backoff_secs: list[float] | None = None,
    ):
        self.api_key = api_key or config.GOOGLE_CLOUD_TTS_API_KEY
        self.base_url = base_url
        self.backoff_secs = BACKOFF_SECS if backoff_secs is None else backoff_secs
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

    async def _request_with_retry(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Make HTTP request with exponential backoff retry on 5xx/timeout."""
        last_exc = None
        for attempt in range(MAX_RETRIES):
            try:
                client = await self._get_client()
                resp = await client.request(method, path, **kwargs)
                if resp.status_code in (401, 403):
                    raise TTSError("Invalid Google Cloud TTS API key")
                if resp.status_code == 429:
                    raise TTSError("Google Cloud TTS API rate limit exceeded")
                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp
                last_exc = httpx.HTTPStatusError(
                    f"Server error {resp.status_code}",
                    request=resp.request,
                    response=resp,
                )
            except (httpx.TimeoutException, httpx.HTTPStatusError) as e:
                if isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500:
                    raise
                last_exc = e

            if attempt < MAX_RETRIES - 1:
                wait = self.backoff_secs[attempt]
                logger.warning("TTS request failed (attempt %d/%d), retrying in %ss: %s",
                               attempt + 1, MAX_RETRIES, wait, last_exc)
                await asyncio.sleep(wait)

        raise last_exc  # type: ignore[misc]

    async def synthesize(
        self,
        text: str,
        voice: str = DEFAULT_VOICE,
        language: str = DEFAULT_LANGUAGE,
    ) -> bytes:
        """Synthesize speech for text. Returns MP3 bytes."""
        if not self.api_key:
            raise TTSError("GOOGLE_CLOUD_TTS_API_KEY is not configured")

        resp = await self._request_with_retry(
            "POST",
            "/text:synthesize",
            params={"key": self.api_key},
            json={
                "input": {"text": text},
                "voice": {"languageCode": language, "name": voice},
                "audioConfig": {"audioEncoding": "MP3"},
            },
        )
        audio_content = resp.json().get("audioContent")
        if not audio_content:
            raise TTSError("TTS response has no audioContent")
        return base64.b64decode(audio_content)
