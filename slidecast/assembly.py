"""Concatenate per-unit audio into one track, and bridge to pydub."""

import numpy as np
from pydub import AudioSegment

from slidecast.constants import SAMPLE_RATE
from slidecast.models import GeneratedAudio
from slidecast.wav import float_to_pcm16, pcm16_to_float


def concatenate(audios: list[GeneratedAudio], sample_rate: int = SAMPLE_RATE) -> GeneratedAudio:
    """Join mono buffers end to end: no padding, no cross-fade.

    All inputs must share one sample rate. An empty list yields an empty
    buffer at ``sample_rate``.
    """
    if not audios:
        return GeneratedAudio(samples=np.zeros(0, dtype=np.float32), sample_rate=sample_rate)

    rate = audios[0].sample_rate
    for i, audio in enumerate(audios):
        if audio.channels != 1:
            raise ValueError(f"Audio {i} has {audio.channels} channels, expected mono")
        if audio.sample_rate != rate:
            raise ValueError(
                f"Audio {i} has sample rate {audio.sample_rate}, expected {rate}"
            )

    samples = np.concatenate([np.asarray(a.samples, dtype=np.float32) for a in audios])
    return GeneratedAudio(samples=samples, sample_rate=rate, channels=1)


def to_audio_segment(audio: GeneratedAudio) -> AudioSegment:
    """Wrap float samples as a 16-bit pydub AudioSegment."""
    return AudioSegment(
        data=float_to_pcm16(audio.samples).tobytes(),
        sample_width=2,
        frame_rate=audio.sample_rate,
        channels=audio.channels,
    )


def from_audio_segment(segment: AudioSegment, sample_rate: int = SAMPLE_RATE) -> GeneratedAudio:
    """Convert any pydub AudioSegment to mono 16-bit float samples at ``sample_rate``."""
    segment = segment.set_channels(1).set_frame_rate(sample_rate).set_sample_width(2)
    pcm = np.array(segment.get_array_of_samples(), dtype=np.int16)
    return GeneratedAudio(samples=pcm16_to_float(pcm), sample_rate=sample_rate, channels=1)
