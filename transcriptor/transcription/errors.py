from __future__ import annotations


class TranscriptionError(RuntimeError):
    """Base class for every failure on the transcription path."""


class BackendConfigurationError(TranscriptionError):
    """Raised while constructing a backend whose credentials are missing."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"{provider} API key not configured")
        self.provider = provider


class BackendValidationError(TranscriptionError, ValueError):
    """Raised when a file fails a backend's own pre-flight checks."""


class ProviderError(TranscriptionError):
    """Raised when the remote provider fails or returns an unusable response."""


class TranscriptionTimeoutError(TranscriptionError):
    """Raised when polling a provider job exceeds the attempt ceiling."""

    def __init__(self, attempts: int, interval: float) -> None:
        super().__init__(
            f"Transcription timed out after {attempts} polling attempts "
            f"({attempts * interval:.0f}s)"
        )
        self.attempts = attempts
        self.interval = interval


def is_credential_error(exc: BaseException) -> bool:
    """Return True when the failure signals a service-unavailable credential problem."""
    return isinstance(exc, BackendConfigurationError) or "API key" in str(exc)
