"""Shared fixtures for slidecast tests."""

import numpy as np
import pytest

from slidecast.models import GeneratedAudio, Segment, Speaker, SpeakerNames
from slidecast.providers import AudioPayload, SynthesisProvider

FRAMES_PER_CHAR = 1200      # 50ms of audio per character at 24kHz


class FakeProvider(SynthesisProvider):
    """Provider returning L16 PCM whose length is proportional to the text.

    ``failures`` is a list of exceptions raised, in order, by the first calls.
    """

    name = "fake"

    def __init__(self, failures=None, sample_rate=24000):
        self.failures = list(failures or [])
        self.sample_rate = sample_rate
        self.calls = []

    async def synthesize(self, text, voice):
        self.calls.append((text, voice))
        if self.failures:
            raise self.failures.pop(0)
        frames = len(text) * FRAMES_PER_CHAR
        pcm = np.full(frames, 3276, dtype="<i2")
        return AudioPayload(data=pcm.tobytes(), mime_type=f"audio/L16;rate={self.sample_rate}")


@pytest.fixture
def fake_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def sample_script():
    return (
        "[SLIDE 1]\n"
        "Host: Hello. Welcome.\n"
        "Expert: Hi there.\n"
        "[SLIDE 2]\n"
        "Host: Let's continue."
    )


@pytest.fixture
def names():
    return SpeakerNames(primary="Host", secondary="Expert")


@pytest.fixture
def voices():
    return {Speaker.PRIMARY: "Puck", Speaker.SECONDARY: "Kore"}


@pytest.fixture
def sample_segments():
    """Pre-built contiguous segments: two slides, both speakers."""
    return [
        Segment(slide_index=0, speaker=Speaker.PRIMARY, text="Hello.", start_time=0.0, end_time=2.0, id="a"),
        Segment(slide_index=0, speaker=Speaker.PRIMARY, text="Welcome.", start_time=2.0, end_time=4.0, id="b"),
        Segment(slide_index=0, speaker=Speaker.SECONDARY, text="Hi there.", start_time=4.0, end_time=6.0, id="c"),
        Segment(slide_index=1, speaker=Speaker.PRIMARY, text="Let's continue.", start_time=6.0, end_time=8.0, id="d"),
    ]


def make_audio(frames, value=0.25, sample_rate=24000):
    return GeneratedAudio(
        samples=np.full(frames, value, dtype=np.float32),
        sample_rate=sample_rate,
    )


@pytest.fixture
def audio_factory():
    return make_audio
