from .assemblyai_backend import AssemblyAIBackend, AssemblyAIConfig
from .backend import ProgressCallback, ProgressReporter, TranscriptionBackend
from .errors import (
    BackendConfigurationError,
    BackendValidationError,
    ProviderError,
    TranscriptionError,
    TranscriptionTimeoutError,
    is_credential_error,
)
from .grouping import DetectedWord, group_words_into_segments
from .models import (
    AudioFile,
    BackendDescriptor,
    BackendFeatures,
    ResultMetadata,
    TranscriptionResult,
    TranscriptionSegment,
    TranscriptionSettings,
    WordTimestamp,
)
from .registry import BackendRegistry, initialize
from .whisper_backend import WhisperBackend, WhisperConfig

__all__ = [
    "AssemblyAIBackend",
    "AssemblyAIConfig",
    "AudioFile",
    "BackendConfigurationError",
    "BackendDescriptor",
    "BackendFeatures",
    "BackendRegistry",
    "BackendValidationError",
    "DetectedWord",
    "ProgressCallback",
    "ProgressReporter",
    "ProviderError",
    "ResultMetadata",
    "TranscriptionBackend",
    "TranscriptionError",
    "TranscriptionResult",
    "TranscriptionSegment",
    "TranscriptionSettings",
    "TranscriptionTimeoutError",
    "WhisperBackend",
    "WhisperConfig",
    "WordTimestamp",
    "group_words_into_segments",
    "initialize",
    "is_credential_error",
]
