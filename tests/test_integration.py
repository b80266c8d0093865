"""Integration tests: full pipeline verification with a fake provider."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FRAMES_PER_CHAR, FakeProvider
from slidecast.artifacts import export_session, import_session, init_output_dir
from slidecast.cli import main
from slidecast.errors import RateLimitedError
from slidecast.exporter import export
from slidecast.merger import merge_segments
from slidecast.models import SpeakerNames
from slidecast.parser import parse_script
from slidecast.sequencer import synthesize_script
from slidecast.sync import find_active_segment, slide_at
from slidecast.tts import SynthesisClient
from slidecast.voices import default_settings, resolve_voices
from slidecast.wav import decode_wav


DECK_SCRIPT = """\
Quarterly review, speaker notes

[SLIDE 1]
**Alice:** Welcome to the quarterly review. Today we cover three topics.
**Bob:** Thanks, Alice. Let's start with revenue.

[**SLIDE 2**]
Alice: Revenue grew twelve percent. That beat our forecast!
Bob: And margins held steady.
Alice: Right. Costs stayed flat.

**[SLIDE 3]**
Bob: Finally, hiring. We added five engineers.
Alice: Great. Questions?
"""


def _names():
    return SpeakerNames(primary="Alice", secondary="Bob")


def test_parse_deck_script():
    """Parse the demo deck; every segment has text and a valid slide."""
    segments = parse_script(DECK_SCRIPT, _names())
    assert len(segments) == 13
    assert {s.slide_index for s in segments} == {0, 1, 2}
    assert all(s.text.strip() for s in segments)
    assert all("*" not in s.text for s in segments)


@patch("slidecast.sequencer.asyncio.sleep", new_callable=AsyncMock)
def test_pipeline_exact_sync(mock_sleep, tmp_path):
    """Parse → synthesize → export → sync lands every sentence on its slide."""
    names = _names()
    segments = parse_script(DECK_SCRIPT, names)
    settings = default_settings()
    voices = resolve_voices(settings)
    provider = FakeProvider()

    result = asyncio.run(synthesize_script(segments, SynthesisClient(provider), voices))

    units = merge_segments(segments)
    assert len(provider.calls) == len(units)
    assert result.audio.frame_count == sum(len(u.text) for u in units) * FRAMES_PER_CHAR

    for i, seg in enumerate(result.segments):
        midpoint = (seg.start_time + seg.end_time) / 2
        position = find_active_segment(midpoint, result.segments)
        assert position.index == i
        assert position.slide_index == seg.slide_index

    project_dir = init_output_dir("deck.txt", str(tmp_path))
    wav_path = export(result, project_dir, "deck", names, settings)
    with open(wav_path, "rb") as f:
        decoded = decode_wav(f.read())
    assert decoded.duration == pytest.approx(result.audio.duration)
    assert slide_at(decoded.duration + 1.0, result.segments) == 2


@patch("slidecast.sequencer.asyncio.sleep", new_callable=AsyncMock)
def test_pipeline_survives_transient_errors(mock_sleep):
    failures = [RateLimitedError("429")] * 3
    provider = FakeProvider(failures=failures)
    segments = parse_script(DECK_SCRIPT, _names())
    result = asyncio.run(
        synthesize_script(segments, SynthesisClient(provider), resolve_voices(default_settings()))
    )
    assert len(provider.calls) == len(merge_segments(segments)) + 3
    assert len(result.segments) == len(segments)


def test_session_round_trip_parses_identically(tmp_path):
    path = export_session(str(tmp_path / "deck.json"), DECK_SCRIPT, _names())
    text, names = import_session(path)
    before = [(s.slide_index, s.speaker, s.text) for s in parse_script(DECK_SCRIPT, _names())]
    after = [(s.slide_index, s.speaker, s.text) for s in parse_script(text, names)]
    assert before == after


@patch("slidecast.sequencer.asyncio.sleep", new_callable=AsyncMock)
def test_full_cli_pipeline(mock_sleep, tmp_path, monkeypatch, capsys):
    """new → run → sync → status through the command line."""
    monkeypatch.setattr("slidecast.cli.OUTPUT_DIR", str(tmp_path / "output"))
    script = tmp_path / "deck.txt"
    script.write_text(DECK_SCRIPT, encoding="utf-8")

    with patch("sys.argv", ["slidecast", "new", str(script), "--host", "Alice", "--expert", "Bob"]):
        main()
    with patch("slidecast.cli.make_provider", return_value=FakeProvider()):
        with patch("sys.argv", ["slidecast", "run", "deck"]):
            main()

    project = tmp_path / "output" / "deck"
    with open(project / "final" / "output.json", encoding="utf-8") as f:
        manifest = json.load(f)
    assert [c["slide_index"] for c in manifest["slide_cues"]] == [0, 1, 2]
    assert {s["speaker_name"] for s in manifest["segments"]} == {"Alice", "Bob"}

    capsys.readouterr()
    with patch("sys.argv", ["slidecast", "sync", "deck", "9999"]):
        main()
    out = capsys.readouterr().out
    assert "(exact)" in out
    assert "slide 3" in out
    assert "Questions?" in out

    with patch("sys.argv", ["slidecast", "status", "deck"]):
        main()
    assert "[done] export" in capsys.readouterr().out
