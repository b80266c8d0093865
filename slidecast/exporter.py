"""Export a synthesized track as WAV (and optionally MP3) with a timing manifest."""

import json
import os
from datetime import datetime, timezone

from slidecast.assembly import to_audio_segment
from slidecast.constants import OUTPUT_BITRATE, VERSION
from slidecast.models import SpeakerNames, SynthesisResult
from slidecast.sync import slide_cues
from slidecast.wav import encode_wav


def export(
    result: SynthesisResult,
    project_dir: str,
    slug: str,
    names: SpeakerNames,
    settings: dict,
    mp3: bool = False,
) -> str:
    """Write the final track and manifest.

    Creates:
      - final/<slug>.wav (mono 16-bit PCM)
      - final/<slug>.mp3 (only when mp3=True; needs ffmpeg)
      - final/output.json (segment timing, slide cues, settings)

    Returns path to the WAV file.
    """
    final_dir = os.path.join(project_dir, "final")
    os.makedirs(final_dir, exist_ok=True)

    wav_path = os.path.join(final_dir, f"{slug}.wav")
    with open(wav_path, "wb") as f:
        f.write(encode_wav(result.audio))

    if mp3:
        to_audio_segment(result.audio).export(
            os.path.join(final_dir, f"{slug}.mp3"),
            format="mp3",
            bitrate=OUTPUT_BITRATE,
        )

    manifest = {
        "project": slug,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "producer_version": VERSION,
        "speakers": names.to_dict(),
        "settings": settings,
        "audio": {
            "file": os.path.basename(wav_path),
            "sample_rate": result.audio.sample_rate,
            "channels": result.audio.channels,
            "duration_seconds": round(result.audio.duration, 3),
        },
        "slide_cues": [
            {"slide_index": index, "start_time": start}
            for index, start in slide_cues(result.segments)
        ],
        "segments": [
            {**seg.to_dict(), "speaker_name": names.name_for(seg.speaker)}
            for seg in result.segments
        ],
    }

    with open(os.path.join(final_dir, "output.json"), "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)

    return wav_path
