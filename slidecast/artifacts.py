"""Project directory management, session import/export, and render invalidation."""

import hashlib
import json
import logging
import os
import re
import shutil

from slidecast.constants import OUTPUT_DIR, VERSION
from slidecast.models import Segment, Speaker, SpeakerNames

logger = logging.getLogger(__name__)

# Settings whose change discards the rendered track and its exact timing
INVALIDATING_KEYS = {
    "host-name", "expert-name",
    "host-voice", "expert-voice",
    "style", "provider",
}


def slug_from_path(script_path: str) -> str:
    """Convert script filename to output directory slug.

    "Q3 Review.txt" → "q3_review"
    "/path/to/deck-notes.json" → "deck_notes"
    """
    basename = os.path.splitext(os.path.basename(script_path))[0]
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", basename).strip("_").lower()
    return slug or "script"


def init_output_dir(script_path: str, output_base: str = OUTPUT_DIR) -> str:
    """Create output/<slug>/final/ and return the project directory path."""
    project_dir = os.path.join(output_base, slug_from_path(script_path))
    os.makedirs(os.path.join(project_dir, "final"), exist_ok=True)
    return project_dir


def write_artifact(project_dir: str, filename: str, data: dict) -> str:
    """Write JSON artifact to project_dir/filename.

    Returns path to the written file.
    """
    path = os.path.join(project_dir, filename)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def load_artifact(project_dir: str, filename: str) -> dict | None:
    """Read JSON artifact. Returns None if missing or malformed."""
    path = os.path.join(project_dir, filename)
    if not os.path.exists(path):
        return None
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError:
        logger.warning("Malformed artifact: %s, ignoring", path)
        return None


# --- Session export/import ---

def session_record(text: str, names: SpeakerNames) -> dict:
    return {"script": text, "speakers": names.to_dict()}


def export_session(path: str, text: str, names: SpeakerNames) -> str:
    """Write a portable session file (script text + speaker name bindings)."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(session_record(text, names), f, indent=2, ensure_ascii=False)
    return path


def import_session(path: str) -> tuple[str, SpeakerNames]:
    """Read a session file, or a plain-text script with default speaker names."""
    with open(path, encoding="utf-8") as f:
        raw = f.read()

    if path.lower().endswith(".json"):
        data = json.loads(raw)
        if not isinstance(data, dict) or not isinstance(data.get("script"), str):
            raise ValueError(f"Not a session file: {path}")
        return data["script"], SpeakerNames.from_dict(data.get("speakers"))

    return raw, SpeakerNames()


# --- Render cache ---

def render_fingerprint(
    text: str,
    names: SpeakerNames,
    voices: dict[Speaker, str],
    provider: str,
) -> str:
    """Hash of every input that, when changed, invalidates a rendered track."""
    payload = json.dumps(
        {
            "script": text,
            "speakers": names.to_dict(),
            "voices": {speaker.value: voice for speaker, voice in sorted(voices.items())},
            "provider": provider,
        },
        sort_keys=True,
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def save_render(
    project_dir: str,
    fingerprint: str,
    segments: list[Segment],
    duration: float,
) -> str:
    return write_artifact(project_dir, "render.json", {
        "fingerprint": fingerprint,
        "producer_version": VERSION,
        "duration_seconds": duration,
        "segments": [seg.to_dict() for seg in segments],
    })


def load_render(project_dir: str, fingerprint: str) -> list[Segment] | None:
    """Exact segments from the last render, or None if absent or stale."""
    data = load_artifact(project_dir, "render.json")
    if not data:
        return None
    if data.get("fingerprint") != fingerprint:
        logger.info("Render in %s is stale (inputs changed)", project_dir)
        return None
    return [Segment.from_dict(s) for s in data.get("segments", [])]


def invalidate_render(project_dir: str) -> list[str]:
    """Delete the rendered track and its timing.

    Returns list of deleted artifact names.
    """
    deleted = []
    render = os.path.join(project_dir, "render.json")
    if os.path.exists(render):
        os.remove(render)
        deleted.append("render.json")
    final_dir = os.path.join(project_dir, "final")
    if os.path.exists(final_dir) and os.listdir(final_dir):
        shutil.rmtree(final_dir)
        deleted.append("final")
    os.makedirs(final_dir, exist_ok=True)
    return deleted


# --- Status ---

def get_project_status(project_dir: str) -> dict:
    """Return dict describing current state of each pipeline step."""
    status = {}

    script = load_artifact(project_dir, "script.json")
    status["parse"] = {"state": "done"} if script else {"state": "pending"}

    render = load_artifact(project_dir, "render.json")
    if render:
        status["synthesis"] = {
            "state": "done",
            "segments": len(render.get("segments", [])),
            "duration": render.get("duration_seconds", 0.0),
        }
    else:
        status["synthesis"] = {"state": "pending"}

    final_dir = os.path.join(project_dir, "final")
    if os.path.exists(final_dir):
        wavs = [f for f in os.listdir(final_dir) if f.endswith(".wav")]
        status["export"] = {"state": "done" if wavs else "pending"}
    else:
        status["export"] = {"state": "pending"}

    return status


def list_projects(output_base: str = OUTPUT_DIR) -> list[str]:
    """List all project slugs under the output directory.

    Returns sorted list of directory names that contain a script.json.
    """
    if not os.path.exists(output_base):
        return []
    projects = []
    for name in os.listdir(output_base):
        project_dir = os.path.join(output_base, name)
        if os.path.isdir(project_dir) and os.path.exists(os.path.join(project_dir, "script.json")):
            projects.append(name)
    return sorted(projects)
