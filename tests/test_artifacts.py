"""Tests for artifacts module."""

import json
import os

import pytest

from slidecast.artifacts import (
    export_session,
    get_project_status,
    import_session,
    init_output_dir,
    invalidate_render,
    list_projects,
    load_artifact,
    load_render,
    render_fingerprint,
    save_render,
    slug_from_path,
    write_artifact,
)
from slidecast.models import Speaker, SpeakerNames


def test_slug_from_path():
    assert slug_from_path("Q3 Review.txt") == "q3_review"
    assert slug_from_path("/path/to/deck-notes.json") == "deck_notes"
    assert slug_from_path("___.txt") == "script"


def test_init_output_dir(tmp_path):
    project_dir = init_output_dir("talk.txt", str(tmp_path))
    assert project_dir == os.path.join(str(tmp_path), "talk")
    assert os.path.isdir(os.path.join(project_dir, "final"))


def test_write_and_load_artifact(tmp_path):
    path = write_artifact(str(tmp_path), "x.json", {"text": "こんにちは"})
    with open(path, encoding="utf-8") as f:
        assert "こんにちは" in f.read()
    assert load_artifact(str(tmp_path), "x.json") == {"text": "こんにちは"}


def test_load_artifact_missing(tmp_path):
    assert load_artifact(str(tmp_path), "nope.json") is None


def test_load_artifact_malformed(tmp_path):
    (tmp_path / "bad.json").write_text("{not json")
    assert load_artifact(str(tmp_path), "bad.json") is None


def test_session_round_trip(tmp_path):
    names = SpeakerNames(primary="Alice", secondary="Bob")
    path = export_session(str(tmp_path / "session.json"), "Alice: Hi.", names)
    text, loaded = import_session(path)
    assert text == "Alice: Hi."
    assert loaded == names


def test_import_plain_text(tmp_path):
    path = tmp_path / "script.txt"
    path.write_text("Host: Hi.", encoding="utf-8")
    text, names = import_session(str(path))
    assert text == "Host: Hi."
    assert names == SpeakerNames()


def test_import_invalid_session(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"speakers": {}}))
    with pytest.raises(ValueError, match="Not a session file"):
        import_session(str(path))


def test_fingerprint_changes_with_inputs(voices):
    base = render_fingerprint("Host: Hi.", SpeakerNames(), voices, "gemini")
    assert base == render_fingerprint("Host: Hi.", SpeakerNames(), dict(voices), "gemini")
    assert base != render_fingerprint("Host: Hello.", SpeakerNames(), voices, "gemini")
    assert base != render_fingerprint("Host: Hi.", SpeakerNames(primary="Al"), voices, "gemini")
    assert base != render_fingerprint("Host: Hi.", SpeakerNames(), {**voices, Speaker.PRIMARY: "Zephyr"}, "gemini")
    assert base != render_fingerprint("Host: Hi.", SpeakerNames(), voices, "edge")


def test_save_and_load_render(tmp_path, sample_segments):
    save_render(str(tmp_path), "abc", sample_segments, 8.0)
    assert load_render(str(tmp_path), "abc") == sample_segments
    assert load_render(str(tmp_path), "other") is None


def test_invalidate_render(tmp_path, sample_segments):
    project_dir = init_output_dir("talk.txt", str(tmp_path))
    save_render(project_dir, "abc", sample_segments, 8.0)
    (tmp_path / "talk" / "final" / "talk.wav").write_bytes(b"RIFF")

    deleted = invalidate_render(project_dir)
    assert set(deleted) == {"render.json", "final"}
    assert load_render(project_dir, "abc") is None
    assert os.listdir(os.path.join(project_dir, "final")) == []


def test_invalidate_nothing(tmp_path):
    project_dir = init_output_dir("talk.txt", str(tmp_path))
    assert invalidate_render(project_dir) == []


def test_project_status(tmp_path, sample_segments):
    project_dir = init_output_dir("talk.txt", str(tmp_path))
    status = get_project_status(project_dir)
    assert status["parse"]["state"] == "pending"
    assert status["synthesis"]["state"] == "pending"
    assert status["export"]["state"] == "pending"

    write_artifact(project_dir, "script.json", {"script": "Host: Hi."})
    save_render(project_dir, "abc", sample_segments, 8.0)
    (tmp_path / "talk" / "final" / "talk.wav").write_bytes(b"RIFF")
    status = get_project_status(project_dir)
    assert status["parse"]["state"] == "done"
    assert status["synthesis"] == {"state": "done", "segments": 4, "duration": 8.0}
    assert status["export"]["state"] == "done"


def test_list_projects(tmp_path):
    for name in ("b_talk", "a_talk"):
        project_dir = init_output_dir(f"{name}.txt", str(tmp_path))
        write_artifact(project_dir, "script.json", {})
    os.makedirs(tmp_path / "stray")
    assert list_projects(str(tmp_path)) == ["a_talk", "b_talk"]
    assert list_projects(str(tmp_path / "missing")) == []
