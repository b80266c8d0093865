"""16-bit PCM conversion and the canonical 44-byte WAV container."""

import struct

import numpy as np

from slidecast.constants import SAMPLE_RATE
from slidecast.models import GeneratedAudio

WAV_HEADER_SIZE = 44

# RIFF header, fmt chunk (PCM, 16 bytes), data chunk header, all little-endian
_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Clamp to [-1, 1] and scale: positive × 32767 (rounded up), negative × 32768.

    ``pcm16_to_float(float_to_pcm16(x))`` stays within 1/32768 of ``x``.
    """
    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, np.round(clipped * 32768.0), np.ceil(clipped * 32767.0))
    return scaled.astype("<i2")


def pcm16_to_float(pcm: np.ndarray) -> np.ndarray:
    return np.asarray(pcm, dtype=np.float32) / 32768.0


def pcm16_bytes_to_float(data: bytes) -> np.ndarray:
    """Decode raw little-endian signed 16-bit PCM bytes; a trailing odd byte is dropped."""
    usable = len(data) - (len(data) % 2)
    return pcm16_to_float(np.frombuffer(data[:usable], dtype="<i2"))


def build_wav_header(data_size: int, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Canonical mono 16-bit PCM WAV header for ``data_size`` bytes of samples."""
    channels = 1
    bits_per_sample = 16
    block_align = channels * bits_per_sample // 8
    return _HEADER_STRUCT.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,                          # fmt chunk size
        1,                           # audio format: PCM
        channels,
        sample_rate,
        sample_rate * block_align,   # byte rate
        block_align,
        bits_per_sample,
        b"data",
        data_size,
    )


def encode_wav(audio: GeneratedAudio) -> bytes:
    """Encode mono float audio as a WAV file (header + 16-bit PCM)."""
    if audio.channels != 1:
        raise ValueError(f"WAV encoder expects mono audio, got {audio.channels} channels")
    pcm = float_to_pcm16(audio.samples).tobytes()
    return build_wav_header(len(pcm), audio.sample_rate) + pcm


def decode_wav(data: bytes) -> GeneratedAudio:
    """Decode a canonical 44-byte-header 16-bit PCM WAV file."""
    if len(data) < WAV_HEADER_SIZE:
        raise ValueError("WAV data shorter than header")

    (
        riff, _riff_size, wave, fmt, fmt_size, audio_format, channels,
        sample_rate, _byte_rate, _block_align, bits, data_id, data_size,
    ) = _HEADER_STRUCT.unpack_from(data)

    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_id != b"data":
        raise ValueError("Not a canonical RIFF/WAVE file")
    if fmt_size != 16 or audio_format != 1 or bits != 16:
        raise ValueError(f"Unsupported WAV format (format={audio_format}, bits={bits})")

    payload = data[WAV_HEADER_SIZE:WAV_HEADER_SIZE + data_size]
    return GeneratedAudio(
        samples=pcm16_bytes_to_float(payload),
        sample_rate=sample_rate,
        channels=channels,
    )
