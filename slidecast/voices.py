"""Voice catalogues, style presets and per-speaker voice resolution."""

import logging

from slidecast.constants import DEFAULT_PROVIDER, DEFAULT_STYLE
from slidecast.models import Speaker

logger = logging.getLogger(__name__)

# Gemini prebuilt voices (multilingual)
GEMINI_VOICES = [
    "Zephyr", "Puck", "Charon", "Kore", "Fenrir", "Leda", "Orus", "Aoede",
    "Callirrhoe", "Autonoe", "Enceladus", "Iapetus", "Umbriel", "Algieba",
    "Despina", "Erinome", "Algenib", "Rasalgethi", "Laomedeia", "Achernar",
    "Alnilam", "Schedar", "Gacrux", "Pulcherrima", "Achird", "Zubenelgenubi",
    "Vindemiatrix", "Sadachbia", "Sadaltager", "Sulafat",
]

# Hardcoded edge-tts pool (avoids network call at startup)
EDGE_VOICES = [
    "ja-JP-NanamiNeural",
    "ja-JP-KeitaNeural",
    "en-US-AriaNeural",
    "en-US-DavisNeural",
    "en-US-JennyNeural",
    "en-US-GuyNeural",
    "en-GB-SoniaNeural",
    "en-GB-RyanNeural",
]

VOICE_CATALOGUES = {
    "gemini": GEMINI_VOICES,
    "edge": EDGE_VOICES,
}

# Style presets: default (primary, secondary) voice pair per provider
STYLE_PRESETS = {
    "visual_commentary": {
        "description": "Slide walkthrough: listeners are looking at the slides",
        "gemini": ("Zephyr", "Fenrir"),
        "edge": ("en-US-JennyNeural", "en-US-GuyNeural"),
    },
    "deep_dive": {
        "description": "Two-host deep dive, no reference to slide layout",
        "gemini": ("Puck", "Kore"),
        "edge": ("en-US-DavisNeural", "en-US-AriaNeural"),
    },
    "custom": {
        "description": "User-chosen voice pair",
        "gemini": ("Puck", "Fenrir"),
        "edge": ("ja-JP-KeitaNeural", "ja-JP-NanamiNeural"),
    },
}


def default_settings() -> dict:
    return {
        "provider": DEFAULT_PROVIDER,
        "style": DEFAULT_STYLE,
        "voices": {"primary": None, "secondary": None},
        "mp3": False,
    }


def list_voices(provider: str, filter_str: str | None = None) -> list[str]:
    voices = VOICE_CATALOGUES.get(provider, [])
    if filter_str:
        voices = [v for v in voices if filter_str.lower() in v.lower()]
    return voices


def resolve_voices(settings: dict) -> dict[Speaker, str]:
    """Map each speaker to a voice id.

    Priority: explicit per-speaker voice → style preset → "custom" preset.
    Voices missing from the provider's catalogue are used as-is with a warning.
    """
    provider = settings.get("provider") or DEFAULT_PROVIDER
    style = settings.get("style") or DEFAULT_STYLE
    preset = STYLE_PRESETS.get(style)
    if preset is None:
        logger.warning("Unknown style %r, using custom preset", style)
        preset = STYLE_PRESETS["custom"]
    primary_default, secondary_default = preset.get(provider, STYLE_PRESETS["custom"]["gemini"])

    chosen = settings.get("voices") or {}
    result = {
        Speaker.PRIMARY: chosen.get("primary") or primary_default,
        Speaker.SECONDARY: chosen.get("secondary") or secondary_default,
    }

    catalogue = VOICE_CATALOGUES.get(provider)
    for speaker, voice in result.items():
        if catalogue is not None and voice not in catalogue:
            logger.warning("Voice %s is not in the %s catalogue for %s", voice, provider, speaker.value)
    return result
