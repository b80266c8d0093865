"""Drive merged units through the synthesis client, one request at a time."""

import asyncio
import logging
from dataclasses import replace

from slidecast.assembly import concatenate
from slidecast.constants import TTS_PACING_DELAY
from slidecast.merger import merge_segments
from slidecast.models import GeneratedAudio, MergedSegment, Segment, Speaker, SynthesisResult
from slidecast.tts import SynthesisClient

logger = logging.getLogger(__name__)


class GenerationCounter:
    """Monotonic run token for cooperative cancellation.

    Each run calls ``begin()``; a run whose token is no longer current has
    been superseded and drops its work at the next await.
    """

    def __init__(self) -> None:
        self.current = 0

    def begin(self) -> int:
        self.current += 1
        return self.current

    def is_current(self, token: int) -> bool:
        return token == self.current


def apportion(unit: MergedSegment, start: float, end: float) -> list[Segment]:
    """Split a unit's exact [start, end) span across its member sentences.

    Slices are proportional to character count; the last member ends exactly
    at ``end`` so consecutive units stay contiguous.
    """
    weights = [max(len(m.text.strip()), 1) for m in unit.members]
    total = sum(weights)
    span = end - start

    result = []
    consumed = 0
    seg_start = start
    for i, (member, weight) in enumerate(zip(unit.members, weights)):
        consumed += weight
        seg_end = end if i == len(weights) - 1 else start + span * consumed / total
        result.append(replace(member, start_time=seg_start, end_time=seg_end))
        seg_start = seg_end
    return result


async def synthesize_script(
    segments: list[Segment],
    client: SynthesisClient,
    voices: dict[Speaker, str],
    generation: GenerationCounter | None = None,
    pacing_delay: float = TTS_PACING_DELAY,
) -> SynthesisResult | None:
    """Synthesize a parsed script into one track with exact sentence timing.

    Units are requested strictly in order with ``pacing_delay`` seconds
    between requests. Any unit failure propagates and nothing is returned
    for the run. Returns None if ``generation`` moved on while this run was
    waiting (a newer run superseded it).
    """
    token = generation.begin() if generation is not None else None

    def superseded() -> bool:
        return generation is not None and not generation.is_current(token)

    units = merge_segments(segments)
    pending = [u for u in units if u.text.strip()]
    if len(pending) < len(units):
        logger.info("Skipping %d empty unit(s)", len(units) - len(pending))

    missing = {u.speaker for u in pending} - set(voices)
    if missing:
        raise ValueError(f"No voice configured for: {', '.join(sorted(s.value for s in missing))}")

    total = len(pending)
    audios: list[GeneratedAudio] = []
    corrected: list[Segment] = []
    frames = 0

    for i, unit in enumerate(pending):
        if i > 0:
            await asyncio.sleep(pacing_delay)
            if superseded():
                return None

        print(f"  Synthesizing unit {i + 1}/{total} (slide {unit.slide_index + 1}, {unit.speaker.value})")
        try:
            audio = await client.synthesize(unit.text, voices[unit.speaker], is_stale=superseded)
        except Exception:
            if superseded():
                return None
            raise
        if superseded():
            return None

        start = frames / client.sample_rate
        frames += audio.frame_count
        corrected.extend(apportion(unit, start, frames / client.sample_rate))
        audios.append(audio)

    return SynthesisResult(audio=concatenate(audios, client.sample_rate), segments=corrected)
