"""Parse slide-annotated dialogue scripts into timed, speaker-attributed segments.

Script format:

    [SLIDE 1]
    Host: Hello. Welcome.
    Expert: Hi there.
    [SLIDE 2]
    Host: Let's continue.

Parsing happens in two stages: ``tokenize()`` turns raw text into marker,
label and text-line tokens, and ``iter_segments()`` folds those tokens into
sentence segments with estimated timing.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from slidecast.constants import (
    CHARS_PER_SECOND,
    MIN_SEGMENT_SECONDS,
    HOST_KEYWORD,
    EXPERT_KEYWORD,
)
from slidecast.models import Segment, Speaker, SpeakerNames

logger = logging.getLogger(__name__)

# [SLIDE 3], [slide 3], [**SLIDE 3**], **[SLIDE 3]**
_MARKER_RE = re.compile(
    r"(?:\*\*)?\[\s*(?:\*\*)?\s*SLIDE\s+(\d+)\s*(?:\*\*)?\s*\](?:\*\*)?",
    re.IGNORECASE,
)

# Sentence-final punctuation (ASCII and full-width) followed by whitespace
_SENTENCE_END_RE = re.compile(r"(?<=[.!?。！？．])\s+")

_EMPHASIS_RE = re.compile(r"\*\*|__")


class TokenKind(Enum):
    MARKER = "marker"
    LABEL = "label"
    TEXT = "text"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str = ""
    speaker: Speaker | None = None      # LABEL only
    slide_index: int | None = None      # MARKER only


def _label_pattern(names: SpeakerNames) -> tuple[re.Pattern, dict[str, Speaker]]:
    """Build the speaker-label regex and a casefolded name → role lookup."""
    lookup = {}
    spellings = []
    # Role keywords first so a display name cannot rebind them
    for name, speaker in (
        (HOST_KEYWORD, Speaker.PRIMARY),
        (EXPERT_KEYWORD, Speaker.SECONDARY),
        (names.primary, Speaker.PRIMARY),
        (names.secondary, Speaker.SECONDARY),
    ):
        name = name.strip()
        if name and name.casefold() not in lookup:
            lookup[name.casefold()] = speaker
            spellings.append(name)

    # Match the names as written: casefold() can change length ("ß" → "ss")
    alternation = "|".join(
        re.escape(name) for name in sorted(spellings, key=len, reverse=True)
    )
    pattern = re.compile(
        rf"^(?:\*\*|__)?\s*({alternation})\s*(?:\*\*|__)?\s*[:：]\s*(?:\*\*|__)?",
        re.IGNORECASE,
    )
    return pattern, lookup


def marker_to_slide_index(page: str | int) -> int:
    """Convert a 1-based page number from a marker into a 0-based slide index."""
    return max(1, int(page)) - 1


def tokenize(text: str, names: SpeakerNames | None = None) -> Iterator[Token]:
    """Yield MARKER, LABEL and TEXT tokens for a script.

    A label line yields a LABEL token followed by a TEXT token for the
    remainder of the line (if any). Blank lines yield nothing. Anything that
    does not match the marker or label grammar is plain text, so malformed
    markers are passed through as speech rather than rejected.
    """
    label_re, lookup = _label_pattern(names or SpeakerNames())

    # split() with one capture group alternates text, page, text, page, ...
    parts = _MARKER_RE.split(text)
    for i, part in enumerate(parts):
        if i % 2 == 1:
            yield Token(TokenKind.MARKER, value=part, slide_index=marker_to_slide_index(part))
            continue

        for line in part.splitlines():
            stripped = line.strip()
            if not stripped:
                continue
            match = label_re.match(stripped)
            if match:
                yield Token(
                    TokenKind.LABEL,
                    value=match.group(1),
                    speaker=lookup[match.group(1).casefold()],
                )
                stripped = stripped[match.end():].strip()
                if not stripped:
                    continue
            yield Token(TokenKind.TEXT, value=stripped)


def split_sentences(line: str) -> list[str]:
    """Split a line into sentences on sentence-final punctuation + whitespace.

    Emphasis markup is removed first. Heuristic: abbreviations such as
    "Dr. Smith" are split too.
    """
    cleaned = _EMPHASIS_RE.sub("", line)
    sentences = []
    for piece in _SENTENCE_END_RE.split(cleaned):
        piece = piece.strip()
        if piece:
            sentences.append(piece)
    return sentences


def estimate_duration(text: str) -> float:
    """Estimated spoken duration in seconds, before real audio exists."""
    return max(MIN_SEGMENT_SECONDS, len(text) / CHARS_PER_SECOND)


def iter_segments(text: str, names: SpeakerNames | None = None) -> Iterator[Segment]:
    """Lazily yield segments for a script, with contiguous estimated times.

    Text before the first speaker label is dropped. The current speaker
    carries over slide markers; text before the first marker is slide 0.
    """
    slide_index = 0
    speaker = None
    cursor = 0.0

    for token in tokenize(text, names):
        if token.kind is TokenKind.MARKER:
            if token.slide_index < slide_index:
                logger.warning(
                    "Slide marker %s goes back from slide %d", token.value, slide_index + 1
                )
            slide_index = token.slide_index
        elif token.kind is TokenKind.LABEL:
            speaker = token.speaker
        elif speaker is None:
            logger.debug("Dropping unlabeled text: %s", token.value[:50])
        else:
            for sentence in split_sentences(token.value):
                end = cursor + estimate_duration(sentence)
                yield Segment(
                    slide_index=slide_index,
                    speaker=speaker,
                    text=sentence,
                    start_time=cursor,
                    end_time=end,
                )
                cursor = end


def parse_script(text: str, names: SpeakerNames | None = None) -> list[Segment]:
    """Parse script text into a list of Segments with estimated timing."""
    return list(iter_segments(text, names))


def slide_count(segments: list[Segment]) -> int:
    """Number of slides referenced by the segments (highest index + 1)."""
    if not segments:
        return 0
    return max(seg.slide_index for seg in segments) + 1


def script_stats(segments: list[Segment]) -> dict:
    """Summary counts used by the status command."""
    return {
        "segments": len(segments),
        "slides": slide_count(segments),
        "primary": sum(1 for s in segments if s.speaker is Speaker.PRIMARY),
        "secondary": sum(1 for s in segments if s.speaker is Speaker.SECONDARY),
        "estimated_seconds": round(segments[-1].end_time, 1) if segments else 0.0,
    }
