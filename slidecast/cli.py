"""CLI interface with subcommand routing and pipeline orchestration."""

import argparse
import asyncio
import logging
import os
import shutil
import sys

from slidecast.artifacts import (
    INVALIDATING_KEYS,
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
    session_record,
    slug_from_path,
    write_artifact,
)
from slidecast.constants import OUTPUT_DIR, VERSION
from slidecast.errors import RetriesExhaustedError
from slidecast.exporter import export
from slidecast.models import Speaker, SpeakerNames
from slidecast.parser import parse_script, script_stats
from slidecast.providers import PROVIDER_NAMES, make_provider
from slidecast.sequencer import synthesize_script
from slidecast.sync import find_active_segment
from slidecast.tts import SynthesisClient
from slidecast.voices import STYLE_PRESETS, default_settings, list_voices, resolve_voices
from slidecast.wav import decode_wav

logger = logging.getLogger(__name__)


def _check_ffmpeg():
    """Verify ffmpeg is installed (needed to decode MP3 payloads and export MP3)."""
    if not shutil.which("ffmpeg"):
        print("Error: ffmpeg is required but not found.", file=sys.stderr)
        print("Install with: brew install ffmpeg", file=sys.stderr)
        raise SystemExit(1)


def _get_project_dir(slug: str) -> str:
    """Get project directory path, verify it exists."""
    project_dir = os.path.join(OUTPUT_DIR, slug)
    if not os.path.isdir(project_dir):
        print(f"Error: Project '{slug}' not found.", file=sys.stderr)
        print("Run 'slidecast new <file>' to create a project.", file=sys.stderr)
        raise SystemExit(1)
    if not os.path.exists(os.path.join(project_dir, "script.json")):
        print(f"Error: Project '{slug}' is incomplete (no script.json).", file=sys.stderr)
        raise SystemExit(1)
    return project_dir


def _load_project(project_dir: str) -> tuple[str, SpeakerNames, dict]:
    """Return (script text, speaker names, settings) for a project."""
    script = load_artifact(project_dir, "script.json")
    if not script or not isinstance(script.get("script"), str):
        print(f"Error: {project_dir}/script.json is unreadable.", file=sys.stderr)
        raise SystemExit(1)
    settings = {**default_settings(), **(load_artifact(project_dir, "settings.json") or {})}
    return script["script"], SpeakerNames.from_dict(script.get("speakers")), settings


def cmd_new(args):
    """Create a new project from a script or session file."""
    file_path = args.file

    if not os.path.exists(file_path):
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)

    try:
        text, names = import_session(file_path)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    if not text.strip():
        print(f"Error: File is empty: {file_path}", file=sys.stderr)
        raise SystemExit(1)

    names = SpeakerNames(
        primary=args.host or names.primary,
        secondary=args.expert or names.secondary,
    )

    slug = slug_from_path(file_path)
    if os.path.exists(os.path.join(OUTPUT_DIR, slug, "script.json")):
        print(f"Error: Project '{slug}' already exists.", file=sys.stderr)
        print(f"Use 'slidecast run {slug}' to generate audio, or 'slidecast set {slug} ...' to adjust.", file=sys.stderr)
        raise SystemExit(1)

    segments = parse_script(text, names)
    if not segments:
        print(f"Error: Could not parse any segments from: {file_path}", file=sys.stderr)
        print(f"Lines must start with '{names.primary}:' or '{names.secondary}:'.", file=sys.stderr)
        raise SystemExit(1)

    project_dir = init_output_dir(file_path, output_base=OUTPUT_DIR)
    write_artifact(project_dir, "script.json", {
        **session_record(text, names),
        "source": os.path.abspath(file_path),
    })

    settings = default_settings()
    if args.provider:
        settings["provider"] = args.provider
    write_artifact(project_dir, "settings.json", settings)

    stats = script_stats(segments)
    print(f"Created project: {slug}")
    print(
        f"Parsed {stats['segments']} segments across {stats['slides']} slides "
        f"({stats['primary']} {names.primary}, {stats['secondary']} {names.secondary})"
    )
    print(f"Estimated duration: {stats['estimated_seconds']}s")
    print(f"Run 'slidecast run {slug}' to generate audio.")


def cmd_run(args):
    """Synthesize the project's script into one synchronized track."""
    slug = args.slug
    project_dir = _get_project_dir(slug)
    if args.verbose:
        logging.getLogger("slidecast").setLevel(logging.INFO)

    text, names, settings = _load_project(project_dir)
    provider_name = settings["provider"]
    voices = resolve_voices(settings)
    fingerprint = render_fingerprint(text, names, voices, provider_name)
    wav_path = os.path.join(project_dir, "final", f"{slug}.wav")

    if not args.force and os.path.exists(wav_path) and load_render(project_dir, fingerprint):
        print(f"[skip] Render is up to date: {wav_path}")
        return

    if provider_name == "edge" or settings.get("mp3"):
        _check_ffmpeg()

    segments = parse_script(text, names)
    if not segments:
        print(f"Error: Project '{slug}' has no speakable segments.", file=sys.stderr)
        raise SystemExit(1)

    try:
        provider = make_provider(provider_name)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    client = SynthesisClient(provider)
    print(
        f"Synthesizing {len(segments)} segments with {provider_name} "
        f"({names.primary}={voices[Speaker.PRIMARY]}, {names.secondary}={voices[Speaker.SECONDARY]})..."
    )
    try:
        result = asyncio.run(synthesize_script(segments, client, voices))
    except RetriesExhaustedError as e:
        if e.quota_exceeded:
            print("Error: Provider quota exceeded. Reduce load or change credentials.", file=sys.stderr)
        else:
            print(f"Error: Audio generation failed ({e}). Try again later.", file=sys.stderr)
        raise SystemExit(1)
    except Exception as e:
        logger.debug("Synthesis run failed", exc_info=True)
        print(f"Error: Audio generation failed ({e}). Try again later.", file=sys.stderr)
        raise SystemExit(1)

    # A failed run leaves the previous render in place
    invalidate_render(project_dir)
    output_path = export(
        result, project_dir, slug, names,
        {**settings, "voices": {s.value: v for s, v in voices.items()}},
        mp3=bool(settings.get("mp3")),
    )
    save_render(project_dir, fingerprint, result.segments, result.audio.duration)
    print(f"Done: {output_path} ({result.audio.duration:.1f}s)")


def cmd_status(args):
    """Show project status."""
    slug = args.slug
    project_dir = _get_project_dir(slug)
    text, names, settings = _load_project(project_dir)
    stats = script_stats(parse_script(text, names))
    voices = resolve_voices(settings)
    status = get_project_status(project_dir)

    print(f"Project: {slug}")
    print(f"Segments: {stats['segments']} across {stats['slides']} slides (est. {stats['estimated_seconds']}s)")
    print(f"Provider: {settings['provider']}  Style: {settings['style']}")
    print("Speakers:")
    print(f"  {names.primary:<15} → {voices[Speaker.PRIMARY]} ({stats['primary']} segments)")
    print(f"  {names.secondary:<15} → {voices[Speaker.SECONDARY]} ({stats['secondary']} segments)")

    print("Steps:")
    for step in ("parse", "synthesis", "export"):
        info = status.get(step, {"state": "pending"})
        marker = "[done]" if info["state"] == "done" else "[----]"
        details = ""
        if step == "synthesis" and info["state"] == "done":
            details = f" ({info['segments']} segments, {info['duration']:.1f}s)"
        print(f"  {marker} {step:<12}{details}")


def cmd_set(args):
    """Update project settings."""
    slug = args.slug
    project_dir = _get_project_dir(slug)
    key = args.key
    values = args.values

    valid_keys = INVALIDATING_KEYS | {"mp3"}
    if key not in valid_keys:
        print(f"Error: Invalid setting key: {key}", file=sys.stderr)
        print(f"Valid keys: {', '.join(sorted(valid_keys))}", file=sys.stderr)
        raise SystemExit(1)
    if not values:
        print(f"Error: 'set {key}' requires a value", file=sys.stderr)
        raise SystemExit(1)

    value = " ".join(values)
    script = load_artifact(project_dir, "script.json")
    settings = {**default_settings(), **(load_artifact(project_dir, "settings.json") or {})}

    if key in ("host-name", "expert-name"):
        role = "primary" if key == "host-name" else "secondary"
        script.setdefault("speakers", {})[role] = value
        write_artifact(project_dir, "script.json", script)

    elif key in ("host-voice", "expert-voice"):
        role = "primary" if key == "host-voice" else "secondary"
        settings.setdefault("voices", {})[role] = value
        write_artifact(project_dir, "settings.json", settings)

    elif key == "style":
        if value not in STYLE_PRESETS:
            print(f"Error: Unknown style '{value}'. Choose from: {', '.join(STYLE_PRESETS)}", file=sys.stderr)
            raise SystemExit(1)
        settings["style"] = value
        write_artifact(project_dir, "settings.json", settings)

    elif key == "provider":
        if value not in PROVIDER_NAMES:
            print(f"Error: Unknown provider '{value}'. Choose from: {', '.join(PROVIDER_NAMES)}", file=sys.stderr)
            raise SystemExit(1)
        settings["provider"] = value
        # Voice ids are provider specific
        settings["voices"] = {"primary": None, "secondary": None}
        write_artifact(project_dir, "settings.json", settings)

    elif key == "mp3":
        if value not in ("on", "off"):
            print("Error: 'set mp3' requires 'on' or 'off'", file=sys.stderr)
            raise SystemExit(1)
        settings["mp3"] = value == "on"
        write_artifact(project_dir, "settings.json", settings)

    print(f"Updated: {key} → {value}")

    if key in INVALIDATING_KEYS:
        deleted = invalidate_render(project_dir)
        if deleted:
            print(f"Invalidated: {', '.join(deleted)} (will regenerate on next run)")


def cmd_list(args):
    """List all projects."""
    projects = list_projects(output_base=OUTPUT_DIR)
    if not projects:
        print("No projects found.")
        return
    print("Projects:")
    for name in projects:
        status = get_project_status(os.path.join(OUTPUT_DIR, name))
        marker = "[done]" if status.get("export", {}).get("state") == "done" else "[----]"
        print(f"  {marker} {name}")


def cmd_voices(args):
    """List available voices."""
    voices = list_voices(args.provider, args.filter)
    if not voices:
        print("No matching voices found.")
        return
    print(f"Available {args.provider} voices:")
    for v in voices:
        print(f"  {v}")


def cmd_sync(args):
    """Show which segment and slide are active at a playback time."""
    slug = args.slug
    project_dir = _get_project_dir(slug)
    text, names, settings = _load_project(project_dir)
    voices = resolve_voices(settings)

    segments = load_render(project_dir, render_fingerprint(text, names, voices, settings["provider"]))
    actual_duration = None
    if segments is None:
        # No exact timing: fall back to estimates, rescaled to any existing track
        segments = parse_script(text, names)
        wav_path = os.path.join(project_dir, "final", f"{slug}.wav")
        if os.path.exists(wav_path):
            with open(wav_path, "rb") as f:
                actual_duration = decode_wav(f.read()).duration
        timing = "estimated"
    else:
        timing = "exact"

    position = find_active_segment(args.seconds, segments, actual_duration)
    if position is None:
        print(f"t={args.seconds:.2f}s: nothing playing")
        return
    seg = segments[position.index]
    print(
        f"t={args.seconds:.2f}s ({timing}): segment {position.index + 1}/{len(segments)}, "
        f"slide {position.slide_index + 1}, {names.name_for(seg.speaker)}: {seg.text}"
    )


def cmd_export(args):
    """Export the project's script and speaker names as a session file."""
    project_dir = _get_project_dir(args.slug)
    text, names, _ = _load_project(project_dir)
    path = export_session(args.path, text, names)
    print(f"Exported session: {path}")


def main():
    """CLI entry point."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(
        prog="slidecast",
        description="Slidecast: turn a slide-annotated two-speaker script into synchronized audio",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # new
    new_parser = subparsers.add_parser("new", help="Create a new project from a script or session file")
    new_parser.add_argument("file", help="Path to the script (.txt) or exported session (.json)")
    new_parser.add_argument("--host", help="Display name bound to the primary speaker")
    new_parser.add_argument("--expert", help="Display name bound to the secondary speaker")
    new_parser.add_argument("--provider", choices=PROVIDER_NAMES, help="Speech provider")
    new_parser.set_defaults(func=cmd_new)

    # run
    run_parser = subparsers.add_parser("run", help="Synthesize the script into audio")
    run_parser.add_argument("slug", help="Project slug (from filename)")
    run_parser.add_argument("-v", "--verbose", action="store_true", help="Log retries and skipped units")
    run_parser.add_argument("--force", action="store_true", help="Re-synthesize even if the render is current")
    run_parser.set_defaults(func=cmd_run)

    # status
    status_parser = subparsers.add_parser("status", help="Show project status")
    status_parser.add_argument("slug", help="Project slug")
    status_parser.set_defaults(func=cmd_status)

    # set
    set_parser = subparsers.add_parser("set", help="Update project settings")
    set_parser.add_argument("slug", help="Project slug")
    set_parser.add_argument("key", help="Setting key")
    set_parser.add_argument("values", nargs="*", help="Setting value(s)")
    set_parser.set_defaults(func=cmd_set)

    # list
    list_parser = subparsers.add_parser("list", help="List all projects")
    list_parser.set_defaults(func=cmd_list)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--provider", choices=PROVIDER_NAMES, default="gemini", help="Voice catalogue")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.set_defaults(func=cmd_voices)

    # sync
    sync_parser = subparsers.add_parser("sync", help="Show the active segment/slide at a playback time")
    sync_parser.add_argument("slug", help="Project slug")
    sync_parser.add_argument("seconds", type=float, help="Playback position in seconds")
    sync_parser.set_defaults(func=cmd_sync)

    # export
    export_parser = subparsers.add_parser("export", help="Export the script session as JSON")
    export_parser.add_argument("slug", help="Project slug")
    export_parser.add_argument("path", help="Destination .json file")
    export_parser.set_defaults(func=cmd_export)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    args.func(args)
