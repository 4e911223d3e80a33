from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import requests
from loguru import logger

from transcriptor.config import AppConfig

from .assemblyai_backend import AssemblyAIBackend, AssemblyAIConfig
from .backend import TranscriptionBackend
from .models import BackendDescriptor
from .whisper_backend import WhisperBackend, WhisperConfig

BackendFactory = Callable[[], TranscriptionBackend]


@dataclass(frozen=True)
class _Registration:
    factory: BackendFactory
    enabled: Callable[[], bool]


class BackendRegistry:
    """
    Single source of truth for which backends are usable.

    Backends are constructed lazily on every lookup. A factory that raises (missing
    credentials, bad configuration) makes its backend unavailable instead of
    failing the caller.
    """

    def __init__(self) -> None:
        self._registrations: dict[str, _Registration] = {}

    def register(
        self,
        backend_id: str,
        factory: BackendFactory,
        *,
        enabled: Callable[[], bool] | bool = True,
    ) -> None:
        check = enabled if callable(enabled) else (lambda value=bool(enabled): value)
        self._registrations[backend_id] = _Registration(factory=factory, enabled=check)

    @property
    def registered_ids(self) -> list[str]:
        return list(self._registrations)

    def get_available_backends(self) -> list[TranscriptionBackend]:
        """Backends that are flag-enabled and construct cleanly, in registration order."""
        available: list[TranscriptionBackend] = []
        for backend_id, registration in self._registrations.items():
            if not registration.enabled():
                logger.debug("Backend {} disabled by feature flag", backend_id)
                continue
            backend = self._construct(backend_id, registration)
            if backend is not None:
                available.append(backend)
        return available

    def get_backend(self, backend_id: str) -> Optional[TranscriptionBackend]:
        registration = self._registrations.get(backend_id)
        if registration is None:
            return None
        return self._construct(backend_id, registration)

    def is_backend_available(self, backend_id: str) -> bool:
        if backend_id not in self._registrations:
            return False
        return any(backend.id == backend_id for backend in self.get_available_backends())

    def get_default_backend(self, preferred: Optional[str] = None) -> Optional[TranscriptionBackend]:
        available = self.get_available_backends()
        if preferred:
            for backend in available:
                if backend.id == preferred:
                    return backend
        return available[0] if available else None

    def describe_available(self) -> list[BackendDescriptor]:
        return [backend.descriptor() for backend in self.get_available_backends()]

    @staticmethod
    def _construct(backend_id: str, registration: _Registration) -> Optional[TranscriptionBackend]:
        try:
            return registration.factory()
        except Exception as exc:  # noqa: BLE001 - construction failure means "unavailable"
            logger.warning("Backend {} unavailable: {}", backend_id, exc)
            return None


def initialize(
    config: AppConfig,
    *,
    session_factory: Callable[[], requests.Session] | None = None,
) -> BackendRegistry:
    """
    Build the registry from explicit configuration.

    Registration order is whisper, then assemblyai; availability listings keep it.
    Credentials and flags are read from ``config`` at lookup time.
    """
    make_session = session_factory or requests.Session
    registry = BackendRegistry()

    def _whisper() -> TranscriptionBackend:
        return WhisperBackend(
            WhisperConfig(
                api_key=config.credentials.openai_api_key,
                base_url=config.providers.openai_base_url,
            ),
            session=make_session(),
        )

    def _assemblyai() -> TranscriptionBackend:
        return AssemblyAIBackend(
            AssemblyAIConfig(
                api_key=config.credentials.assemblyai_api_key,
                base_url=config.providers.assemblyai_base_url,
                poll_interval=config.providers.assemblyai_poll_interval,
                max_poll_attempts=config.providers.assemblyai_max_poll_attempts,
            ),
            session=make_session(),
        )

    registry.register("whisper", _whisper, enabled=lambda: config.features.enable_whisper_backend)
    registry.register("assemblyai", _assemblyai, enabled=lambda: config.features.enable_assemblyai_backend)
    return registry
