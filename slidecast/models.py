"""Data models for slide-synchronized dialogue audio."""

import uuid
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from slidecast.constants import HOST_KEYWORD, EXPERT_KEYWORD, SAMPLE_RATE


class Speaker(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class SpeakerNames:
    """Display names bound to the two speaker roles."""

    primary: str = HOST_KEYWORD
    secondary: str = EXPERT_KEYWORD

    def name_for(self, speaker: Speaker) -> str:
        return self.primary if speaker is Speaker.PRIMARY else self.secondary

    def to_dict(self) -> dict:
        return {"primary": self.primary, "secondary": self.secondary}

    @classmethod
    def from_dict(cls, data: dict | None) -> "SpeakerNames":
        data = data or {}
        return cls(
            primary=data.get("primary") or HOST_KEYWORD,
            secondary=data.get("secondary") or EXPERT_KEYWORD,
        )


def new_segment_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class Segment:
    slide_index: int       # 0-based slide active while this sentence is spoken
    speaker: Speaker
    text: str
    start_time: float      # seconds; estimated until audio exists, exact afterwards
    end_time: float
    id: str = field(default_factory=new_segment_id)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "slide_index": self.slide_index,
            "speaker": self.speaker.value,
            "text": self.text,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Segment":
        return cls(
            slide_index=int(data["slide_index"]),
            speaker=Speaker(data["speaker"]),
            text=data["text"],
            start_time=float(data["start_time"]),
            end_time=float(data["end_time"]),
            id=data.get("id") or new_segment_id(),
        )


@dataclass
class MergedSegment:
    """A run of consecutive segments sharing speaker and slide, sent as one request."""

    slide_index: int
    speaker: Speaker
    text: str
    members: list[Segment]

    @property
    def start_time(self) -> float:
        return self.members[0].start_time

    @property
    def end_time(self) -> float:
        return self.members[-1].end_time


@dataclass
class GeneratedAudio:
    samples: np.ndarray    # float32, mono, in [-1, 1]
    sample_rate: int = SAMPLE_RATE
    channels: int = 1

    @property
    def frame_count(self) -> int:
        return len(self.samples) // self.channels

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate


@dataclass
class SynthesisResult:
    audio: GeneratedAudio
    segments: list[Segment]    # sentence granularity, exact times
