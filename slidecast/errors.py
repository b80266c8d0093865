"""Synthesis error taxonomy.

Transient errors (rate limiting, provider unavailable) are retried with
backoff; everything else fails the unit, and with it the whole run.
"""


class SynthesisError(RuntimeError):
    """Base class for failures while synthesizing a unit of speech."""


class TransientError(SynthesisError):
    """Failure expected to clear if retried after a delay."""


class RateLimitedError(TransientError):
    """Provider signalled quota / resource exhaustion."""


class ProviderUnavailableError(TransientError):
    """Provider temporarily unavailable (5xx, connection reset)."""


class NoAudioReturnedError(SynthesisError):
    """Response carried no audio payload."""


class UnexpectedTextResponseError(SynthesisError):
    """Provider answered with text instead of audio."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Provider returned text instead of audio: {text[:80]!r}")
        self.text = text


class RetriesExhaustedError(SynthesisError):
    """Transient failures persisted past the retry budget."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        super().__init__(f"Synthesis failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error

    @property
    def quota_exceeded(self) -> bool:
        return isinstance(self.last_error, RateLimitedError)


class SupersededError(SynthesisError):
    """A newer run started; this request's result would be discarded."""
