"""Remote speech providers behind one request/response contract.

A provider performs exactly one request for a ``(text, voice)`` pair and
returns the raw encoded payload. It maps its own failures onto the taxonomy
in ``slidecast.errors`` so the retry logic never needs provider knowledge.
"""

import base64
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

import aiohttp
import edge_tts
from edge_tts import exceptions as edge_exceptions
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from slidecast.constants import EDGE_TTS_RATE, GEMINI_TTS_MODEL, SAMPLE_RATE
from slidecast.errors import (
    NoAudioReturnedError,
    ProviderUnavailableError,
    RateLimitedError,
    UnexpectedTextResponseError,
)

logger = logging.getLogger(__name__)

GEMINI_PCM_MIME = f"audio/L16;rate={SAMPLE_RATE}"
PROVIDER_NAMES = ("gemini", "edge")


@dataclass
class AudioPayload:
    data: bytes
    mime_type: str


class SynthesisProvider(ABC):
    """One speech-synthesis request per call; no retries at this level."""

    name = "provider"

    @abstractmethod
    async def synthesize(self, text: str, voice: str) -> AudioPayload:
        """Return the encoded audio for ``text`` spoken by ``voice``."""


def _is_rate_limited(error: genai_errors.APIError) -> bool:
    return error.code == 429 or error.status == "RESOURCE_EXHAUSTED"


def _is_unavailable(error: genai_errors.APIError) -> bool:
    return isinstance(error, genai_errors.ServerError) or error.status == "UNAVAILABLE"


def extract_gemini_audio(response: genai_types.GenerateContentResponse) -> AudioPayload:
    """Pull the inline audio part out of a Gemini response.

    Raises UnexpectedTextResponseError when the model answered with text,
    NoAudioReturnedError when nothing usable came back.
    """
    parts = []
    if response.candidates:
        content = response.candidates[0].content
        if content and content.parts:
            parts = content.parts

    texts = []
    for part in parts:
        inline = part.inline_data
        if inline and inline.data:
            data = inline.data
            if isinstance(data, str):
                data = base64.b64decode(data)
            return AudioPayload(data=data, mime_type=inline.mime_type or GEMINI_PCM_MIME)
        if part.text:
            texts.append(part.text)

    if texts:
        raise UnexpectedTextResponseError(" ".join(texts))
    raise NoAudioReturnedError("No audio data returned from Gemini.")


class GeminiProvider(SynthesisProvider):
    """Gemini TTS through the google-genai async client (24 kHz L16 PCM)."""

    name = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = GEMINI_TTS_MODEL,
        client: genai.Client | None = None,
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)
        self.model = model

    async def synthesize(self, text: str, voice: str) -> AudioPayload:
        config = genai_types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=genai_types.SpeechConfig(
                voice_config=genai_types.VoiceConfig(
                    prebuilt_voice_config=genai_types.PrebuiltVoiceConfig(voice_name=voice),
                ),
            ),
        )
        logger.debug("Gemini TTS request: model=%s voice=%s chars=%d", self.model, voice, len(text))
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=text,
                config=config,
            )
        except genai_errors.APIError as e:
            if _is_rate_limited(e):
                raise RateLimitedError(str(e)) from e
            if _is_unavailable(e):
                raise ProviderUnavailableError(str(e)) from e
            raise
        return extract_gemini_audio(response)


class EdgeProvider(SynthesisProvider):
    """Microsoft Edge read-aloud voices via edge-tts (MP3 payload, no API key)."""

    name = "edge"

    def __init__(self, rate: str = EDGE_TTS_RATE) -> None:
        self.rate = rate

    async def synthesize(self, text: str, voice: str) -> AudioPayload:
        communicate = edge_tts.Communicate(text, voice, rate=self.rate)
        chunks = []
        try:
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    chunks.append(chunk["data"])
        except edge_exceptions.NoAudioReceived as e:
            raise NoAudioReturnedError(str(e)) from e
        except aiohttp.ClientResponseError as e:
            # Includes WSServerHandshakeError: the service answers 429 when throttling
            if e.status == 429:
                raise RateLimitedError(str(e)) from e
            raise ProviderUnavailableError(str(e)) from e
        except (edge_exceptions.WebSocketError, aiohttp.ClientError, ConnectionError, TimeoutError) as e:
            raise ProviderUnavailableError(str(e)) from e

        if not chunks:
            raise NoAudioReturnedError(f"edge-tts produced no audio for: {text[:50]}...")
        return AudioPayload(data=b"".join(chunks), mime_type="audio/mpeg")


def make_provider(name: str, api_key: str | None = None) -> SynthesisProvider:
    """Build a provider by name. Gemini reads GEMINI_API_KEY / GOOGLE_API_KEY."""
    if name == "gemini":
        key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
        if not key:
            raise ValueError("Gemini provider needs GEMINI_API_KEY or GOOGLE_API_KEY")
        return GeminiProvider(api_key=key)
    if name == "edge":
        return EdgeProvider()
    raise ValueError(f"Unknown provider: {name} (choose from {', '.join(PROVIDER_NAMES)})")
