"""Single-unit speech synthesis with retry and exponential backoff."""

import asyncio
import io
import logging
import random
from typing import Callable

from pydub import AudioSegment

from slidecast.assembly import from_audio_segment, to_audio_segment
from slidecast.constants import (
    SAMPLE_RATE,
    TTS_MAX_ATTEMPTS,
    TTS_RETRY_BASE_DELAY,
    TTS_RETRY_JITTER,
    TTS_RETRY_MAX_DELAY,
)
from slidecast.errors import (
    NoAudioReturnedError,
    RetriesExhaustedError,
    SupersededError,
    TransientError,
)
from slidecast.models import GeneratedAudio
from slidecast.providers import AudioPayload, SynthesisProvider
from slidecast.wav import pcm16_bytes_to_float

logger = logging.getLogger(__name__)

_MIME_FORMATS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
    "audio/webm": "webm",
}


def _pcm_rate(mime_type: str, default: int) -> int:
    """Read ``rate=`` from an ``audio/L16;rate=24000`` mime type."""
    for fragment in mime_type.split(";")[1:]:
        key, _, value = fragment.strip().partition("=")
        if key.lower() == "rate" and value.isdigit():
            return int(value)
    return default


class DecodingContext:
    """Decoder scoped to one synthesis attempt.

    Use as ``async with DecodingContext() as decoder``; buffers opened for
    decoding are closed on exit, whatever the outcome.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE) -> None:
        self.sample_rate = sample_rate
        self.closed = False
        self._buffers: list[io.BytesIO] = []

    async def __aenter__(self) -> "DecodingContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        for buf in self._buffers:
            buf.close()
        self._buffers.clear()
        self.closed = True

    def decode(self, payload: AudioPayload) -> GeneratedAudio:
        """Decode a provider payload to mono float samples at ``sample_rate``."""
        if self.closed:
            raise RuntimeError("Decoding context already released")

        mime = payload.mime_type.lower()
        if mime.startswith("audio/l16"):
            rate = _pcm_rate(mime, self.sample_rate)
            audio = GeneratedAudio(samples=pcm16_bytes_to_float(payload.data), sample_rate=rate)
            if rate != self.sample_rate:
                audio = from_audio_segment(to_audio_segment(audio), self.sample_rate)
            return audio

        buf = io.BytesIO(payload.data)
        self._buffers.append(buf)
        fmt = _MIME_FORMATS.get(mime.split(";")[0].strip())
        segment = AudioSegment.from_file(buf, format=fmt)
        return from_audio_segment(segment, self.sample_rate)


class SynthesisClient:
    """Wraps a provider: one logical request per ``synthesize()`` call.

    Transient errors (rate limiting, unavailability) are retried with
    exponential backoff plus jitter, up to ``max_attempts`` requests in
    total. Any other error propagates on the first occurrence.
    """

    def __init__(
        self,
        provider: SynthesisProvider,
        sample_rate: int = SAMPLE_RATE,
        max_attempts: int = TTS_MAX_ATTEMPTS,
        base_delay: float = TTS_RETRY_BASE_DELAY,
        jitter: float = TTS_RETRY_JITTER,
        max_delay: float = TTS_RETRY_MAX_DELAY,
    ) -> None:
        self.provider = provider
        self.sample_rate = sample_rate
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.jitter = jitter
        self.max_delay = max_delay

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed attempt ``attempt`` (0-based)."""
        delay = self.base_delay * (2 ** attempt) + random.uniform(0, self.jitter)
        return min(delay, self.max_delay)

    async def synthesize(
        self,
        text: str,
        voice: str,
        is_stale: Callable[[], bool] | None = None,
    ) -> GeneratedAudio:
        """Synthesize one unit of speech. Exact duration is ``result.duration``.

        ``is_stale`` is checked after every backoff sleep; once it returns True
        no further request is made and SupersededError is raised.
        """
        text = text.strip()
        if not text:
            raise ValueError("Cannot synthesize empty text")

        last_error = None
        for attempt in range(self.max_attempts):
            async with DecodingContext(self.sample_rate) as decoder:
                try:
                    payload = await self.provider.synthesize(text, voice)
                    audio = decoder.decode(payload)
                    if audio.frame_count == 0:
                        raise NoAudioReturnedError(f"Decoded 0 samples for: {text[:50]}...")
                    return audio
                except TransientError as e:
                    last_error = e

            if attempt < self.max_attempts - 1:
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "Attempt %d/%d failed (%s); retrying in %.1fs",
                    attempt + 1, self.max_attempts, last_error, delay,
                )
                await asyncio.sleep(delay)
                if is_stale is not None and is_stale():
                    raise SupersededError(f"Run superseded after attempt {attempt + 1}")

        raise RetriesExhaustedError(self.max_attempts, last_error)
