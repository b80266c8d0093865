"""Resolve the active segment and slide for a playback position."""

from dataclasses import dataclass

from slidecast.models import Segment


@dataclass(frozen=True)
class SyncPosition:
    index: int
    slide_index: int


def estimated_total(segments: list[Segment]) -> float:
    return segments[-1].end_time if segments else 0.0


def scale_time(t: float, segments: list[Segment], actual_duration: float | None) -> float:
    """Map real playback time onto the segments' estimated timeline.

    Linear rescale by total_estimated / actual_duration. This is a lossy
    approximation for showing progress before exact timing exists; with
    exact segment times, pass no ``actual_duration`` and ``t`` is returned
    unchanged.
    """
    total = estimated_total(segments)
    if actual_duration and actual_duration > 0 and total > 0:
        return t * (total / actual_duration)
    return t


def find_active_segment(
    t: float,
    segments: list[Segment],
    actual_duration: float | None = None,
) -> SyncPosition | None:
    """Return the segment whose [start_time, end_time) contains ``t``.

    At or past the final end_time the last segment stays active. Returns
    None before playback starts (t < 0) or when there are no segments.
    """
    if not segments or t < 0:
        return None

    adjusted = scale_time(t, segments, actual_duration)
    if adjusted >= segments[-1].end_time:
        last = len(segments) - 1
        return SyncPosition(index=last, slide_index=segments[last].slide_index)

    # Segments are sorted and contiguous: binary search on start_time
    lo, hi = 0, len(segments) - 1
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if segments[mid].start_time <= adjusted:
            lo = mid
        else:
            hi = mid - 1

    seg = segments[lo]
    if not (seg.start_time <= adjusted < seg.end_time):
        return None
    return SyncPosition(index=lo, slide_index=seg.slide_index)


def slide_at(
    t: float,
    segments: list[Segment],
    actual_duration: float | None = None,
) -> int | None:
    """Slide index to display at ``t``, or None before playback starts."""
    position = find_active_segment(t, segments, actual_duration)
    return position.slide_index if position else None


def slide_cues(segments: list[Segment]) -> list[tuple[int, float]]:
    """(slide_index, start_time) at each point where the displayed slide changes."""
    cues = []
    for seg in segments:
        if not cues or cues[-1][0] != seg.slide_index:
            cues.append((seg.slide_index, seg.start_time))
    return cues
