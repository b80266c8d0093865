"""Merge adjacent same-speaker, same-slide segments into synthesis units."""

from typing import Iterable

from slidecast.models import MergedSegment, Segment


def _members(item: Segment | MergedSegment) -> list[Segment]:
    if isinstance(item, MergedSegment):
        return list(item.members)
    return [item]


def merge_segments(segments: Iterable[Segment | MergedSegment]) -> list[MergedSegment]:
    """Greedy run-length merge on (speaker, slide_index).

    Each unit's text is its members' text joined by single spaces. Accepts
    already merged units (their members are carried over), so merging the
    output again returns an equivalent sequence. Order is preserved and the
    count never grows.
    """
    merged: list[MergedSegment] = []
    current: MergedSegment | None = None

    for item in segments:
        if (
            current is not None
            and item.speaker == current.speaker
            and item.slide_index == current.slide_index
        ):
            current.text = f"{current.text} {item.text}"
            current.members.extend(_members(item))
            continue

        current = MergedSegment(
            slide_index=item.slide_index,
            speaker=item.speaker,
            text=item.text,
            members=_members(item),
        )
        merged.append(current)

    return merged
