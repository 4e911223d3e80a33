from __future__ import annotations

from unittest import mock

from transcriptor.config import AppConfig, Credentials, FeatureFlags
from transcriptor.transcription.assemblyai_backend import AssemblyAIBackend
from transcriptor.transcription.registry import BackendRegistry, initialize
from transcriptor.transcription.whisper_backend import WhisperBackend


def _config(*, openai: str = "sk-test", assemblyai: str = "aai-test") -> AppConfig:
    return AppConfig(credentials=Credentials(openai_api_key=openai, assemblyai_api_key=assemblyai))


def _ids(registry: BackendRegistry) -> list[str]:
    return [backend.id for backend in registry.get_available_backends()]


def test_initialize_registers_in_documented_order() -> None:
    registry = initialize(_config(), session_factory=mock.Mock)

    assert registry.registered_ids == ["whisper", "assemblyai"]
    assert _ids(registry) == ["whisper", "assemblyai"]
    assert isinstance(registry.get_backend("whisper"), WhisperBackend)
    assert isinstance(registry.get_backend("assemblyai"), AssemblyAIBackend)


def test_removing_a_credential_removes_exactly_that_backend() -> None:
    config = _config()
    registry = initialize(config, session_factory=mock.Mock)
    assert _ids(registry) == ["whisper", "assemblyai"]

    config.credentials.openai_api_key = ""

    assert _ids(registry) == ["assemblyai"]
    assert registry.get_backend("whisper") is None
    assert registry.is_backend_available("whisper") is False
    assert registry.is_backend_available("assemblyai") is True


def test_feature_flag_hides_backend_but_get_backend_still_constructs() -> None:
    config = _config()
    config.features = FeatureFlags(enable_assemblyai_backend=False)
    registry = initialize(config, session_factory=mock.Mock)

    assert _ids(registry) == ["whisper"]
    assert registry.is_backend_available("assemblyai") is False
    assert isinstance(registry.get_backend("assemblyai"), AssemblyAIBackend)


def test_availability_is_stable_across_calls() -> None:
    registry = initialize(_config(assemblyai=""), session_factory=mock.Mock)

    assert _ids(registry) == _ids(registry) == ["whisper"]


def test_unknown_backend() -> None:
    registry = initialize(_config(), session_factory=mock.Mock)

    assert registry.get_backend("deepgram") is None
    assert registry.is_backend_available("deepgram") is False


def test_default_backend_prefers_requested_then_first_available() -> None:
    registry = initialize(_config(), session_factory=mock.Mock)

    assert registry.get_default_backend("assemblyai").id == "assemblyai"
    assert registry.get_default_backend("missing").id == "whisper"
    assert registry.get_default_backend().id == "whisper"

    empty = initialize(_config(openai="", assemblyai=""), session_factory=mock.Mock)
    assert empty.get_default_backend() is None
    assert empty.describe_available() == []


def test_failing_factory_degrades_to_unavailable() -> None:
    registry = BackendRegistry()

    def _broken() -> WhisperBackend:
        raise RuntimeError("boom")

    registry.register("broken", _broken)
    registry.register("off", mock.Mock(), enabled=False)

    assert registry.get_available_backends() == []
    assert registry.get_backend("broken") is None
    assert registry.is_backend_available("off") is False


def test_describe_available_returns_descriptors() -> None:
    registry = initialize(_config(), session_factory=mock.Mock)

    descriptors = registry.describe_available()

    assert [descriptor.id for descriptor in descriptors] == ["whisper", "assemblyai"]
    assert descriptors[0].max_file_size == 25 * 1024 * 1024
    assert descriptors[1].features.diarization is True
