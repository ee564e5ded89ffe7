from pathlib import Path

import pytest

from clipgrab.config import Settings, get_settings
from clipgrab.pipeline.models import MediaRequest


ENV_VARS = (
    "TRANSCRIBE_API_KEY",
    "GROQ_API_KEY",
    "VIDEO_MAX_SIZE_MB",
    "AUDIO_CHUNK_SECONDS",
    "YTDLP_PROXY_LIST_PATH",
    "ALLOW_PRIVATE_NETWORK_URLS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = get_settings()
    assert settings.base_url == "https://api.groq.com/openai/v1"
    assert settings.asr_model == "whisper-large-v3-turbo"
    assert settings.video_max_size_mb == 50
    assert settings.video_target_size_mb == 49
    assert settings.chunk_seconds == 600
    assert settings.transcribe_max_bytes == 25 * 1024 * 1024
    assert settings.proxy_list_path is None
    assert settings.allow_private_network is False


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk_test")
    monkeypatch.setenv("VIDEO_MAX_SIZE_MB", "20")
    monkeypatch.setenv("AUDIO_CHUNK_SECONDS", "300")
    monkeypatch.setenv("YTDLP_PROXY_LIST_PATH", "/etc/clipgrab/proxies.txt")
    monkeypatch.setenv("ALLOW_PRIVATE_NETWORK_URLS", "true")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.api_key == "gsk_test"
    assert settings.video_max_bytes == 20 * 1024 * 1024
    assert settings.chunk_seconds == 300
    assert settings.proxy_list_path == Path("/etc/clipgrab/proxies.txt")
    assert settings.allow_private_network is True
    assert settings.log_level == "DEBUG"


def test_transcribe_key_wins_over_groq_key(monkeypatch):
    monkeypatch.setenv("TRANSCRIBE_API_KEY", "primary")
    monkeypatch.setenv("GROQ_API_KEY", "fallback")
    assert get_settings().api_key == "primary"


def test_settings_are_frozen():
    with pytest.raises(Exception):
        Settings().video_max_size_mb = 10


def test_media_request_validation():
    request = MediaRequest("https://youtu.be/x", mode="text", subtitle_format="srt")
    assert request.wants_text and not request.wants_audio and not request.wants_video
    assert MediaRequest("https://youtu.be/x").wants_video
    with pytest.raises(ValueError):
        MediaRequest("https://youtu.be/x", mode="gif")
    with pytest.raises(ValueError):
        MediaRequest("https://youtu.be/x", subtitle_format="ass")
