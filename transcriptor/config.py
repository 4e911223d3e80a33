from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

DEFAULT_ALLOWED_TYPES = [
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/x-wav",
    "audio/mp4",
    "audio/x-m4a",
    "audio/webm",
    "audio/ogg",
    "audio/flac",
    "audio/aac",
    "video/mp4",
    "video/webm",
]


@dataclass(slots=True)
class FeatureFlags:
    """Switches gating backends and optional capabilities."""

    enable_whisper_backend: bool = True
    enable_assemblyai_backend: bool = True
    enable_diarization: bool = True
    enable_translation: bool = True
    enable_word_timestamps: bool = True

    def to_dict(self) -> dict[str, bool]:
        return {
            "enableWhisperBackend": self.enable_whisper_backend,
            "enableAssemblyAIBackend": self.enable_assemblyai_backend,
            "enableDiarization": self.enable_diarization,
            "enableTranslation": self.enable_translation,
            "enableWordTimestamps": self.enable_word_timestamps,
        }


@dataclass(slots=True)
class Credentials:
    openai_api_key: str = ""
    assemblyai_api_key: str = ""


@dataclass(slots=True)
class ProviderSettings:
    """Endpoints and polling knobs for the hosted providers."""

    openai_base_url: str = "https://api.openai.com/v1"
    assemblyai_base_url: str = "https://api.assemblyai.com/v2"
    assemblyai_poll_interval: float = 5.0
    assemblyai_max_poll_attempts: int = 120


@dataclass(slots=True)
class UploadLimits:
    """Runtime configuration for upload validation."""

    max_size_mb: int = 100
    allowed_types: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_TYPES))
    max_duration_minutes: int = 30

    @property
    def max_size_bytes(self) -> int:
        return self.max_size_mb * 1024 * 1024


@dataclass(slots=True)
class RateLimitConfig:
    max_requests: int = 10
    window_seconds: float = 60 * 60


@dataclass(slots=True)
class AppConfig:
    """Configuration values consumed by the registry, job service and HTTP app."""

    features: FeatureFlags = field(default_factory=FeatureFlags)
    credentials: Credentials = field(default_factory=Credentials)
    providers: ProviderSettings = field(default_factory=ProviderSettings)
    upload_limits: UploadLimits = field(default_factory=UploadLimits)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    job_db_path: Path = Path("persist/transcriptor/jobs.db")
    environment: str = "development"
    version: str = "1.0.0"


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() != "false"


def _int_env(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if minimum is not None:
        value = max(minimum, value)
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_upload_limits() -> UploadLimits:
    limits = UploadLimits(
        max_size_mb=_int_env("MAX_FILE_SIZE_MB", 100, minimum=1),
        max_duration_minutes=_int_env("MAX_DURATION_MINUTES", 30, minimum=1),
    )
    allowed = os.getenv("ALLOWED_AUDIO_TYPES")
    if allowed:
        values = [entry.strip().lower() for entry in allowed.split(",") if entry.strip()]
        if values:
            limits.allowed_types = values
    return limits


def load_config() -> AppConfig:
    """Load application configuration from environment variables."""

    features = FeatureFlags(
        enable_whisper_backend=_flag("ENABLE_WHISPER_BACKEND"),
        enable_assemblyai_backend=_flag("ENABLE_ASSEMBLYAI_BACKEND"),
        enable_diarization=_flag("ENABLE_DIARIZATION"),
        enable_translation=_flag("ENABLE_TRANSLATION"),
        enable_word_timestamps=True,
    )
    credentials = Credentials(
        openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        assemblyai_api_key=os.getenv("ASSEMBLYAI_API_KEY", "").strip(),
    )
    providers = ProviderSettings(
        openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        assemblyai_base_url=os.getenv("ASSEMBLYAI_BASE_URL", "https://api.assemblyai.com/v2"),
        assemblyai_poll_interval=_float_env("ASSEMBLYAI_POLL_INTERVAL", 5.0),
        assemblyai_max_poll_attempts=_int_env("ASSEMBLYAI_MAX_POLL_ATTEMPTS", 120, minimum=1),
    )
    return AppConfig(
        features=features,
        credentials=credentials,
        providers=providers,
        upload_limits=_parse_upload_limits(),
        rate_limit=RateLimitConfig(max_requests=_int_env("MAX_FILES_PER_HOUR", 10, minimum=1)),
        job_db_path=Path(os.getenv("TRANSCRIPTOR_JOB_DB", "persist/transcriptor/jobs.db")).expanduser(),
        environment=os.getenv("TRANSCRIPTOR_ENV", "development"),
        version=os.getenv("TRANSCRIPTOR_VERSION", "1.0.0"),
    )
