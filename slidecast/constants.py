"""All magic numbers and configuration constants."""

CHARS_PER_SECOND = 12                # estimated speech rate (tuned for dense CJK text)
MIN_SEGMENT_SECONDS = 2.0            # floor for an estimated sentence duration
TTS_MAX_ATTEMPTS = 10                # total attempts per synthesis unit
TTS_RETRY_BASE_DELAY = 1.0           # seconds: base delay for exponential backoff
TTS_RETRY_JITTER = 1.0               # seconds: upper bound of random jitter added to each delay
TTS_RETRY_MAX_DELAY = 60.0           # seconds: ceiling for a single backoff delay
TTS_PACING_DELAY = 1.0               # seconds between sequential provider calls
SAMPLE_RATE = 24000                  # provider native rate (Hz), mono
GEMINI_TTS_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_PROVIDER = "gemini"
HOST_KEYWORD = "Host"                # role keyword always bound to the primary speaker
EXPERT_KEYWORD = "Expert"            # role keyword always bound to the secondary speaker
DEFAULT_STYLE = "deep_dive"
EDGE_TTS_RATE = "+0%"                # edge-tts relative speech rate
OUTPUT_BITRATE = "192k"            # MP3 output bitrate
OUTPUT_DIR = "output"
VERSION = "0.1.0"
