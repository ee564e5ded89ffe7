from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_path(name: str) -> Path | None:
    value = os.getenv(name, "").strip()
    return Path(value).expanduser() if value else None


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    base_url: str = "https://api.groq.com/openai/v1"
    asr_model: str = "whisper-large-v3-turbo"
    language: str = "en"
    transcribe_timeout: float = 180.0
    transcribe_max_file_mb: int = 25
    chunk_seconds: int = 600
    video_max_size_mb: int = 50
    video_target_size_mb: int = 49
    extract_max_filesize_mb: int = 50
    ytdlp_timeout: int = 180
    stream_timeout: int = 120
    ffmpeg_timeout: int = 120
    ffmpeg_compress_timeout: int = 300
    ffprobe_timeout: int = 15
    cookies_path: Path | None = None
    proxy_list_path: Path | None = None
    archive_dir: Path | None = None
    allow_private_network: bool = False
    log_level: str = "INFO"

    @property
    def video_max_bytes(self) -> int:
        return self.video_max_size_mb * 1024 * 1024

    @property
    def transcribe_max_bytes(self) -> int:
        return self.transcribe_max_file_mb * 1024 * 1024


def get_settings() -> Settings:
    api_key = (os.getenv("TRANSCRIBE_API_KEY") or os.getenv("GROQ_API_KEY") or "").strip()
    return Settings(
        api_key=api_key,
        base_url=os.getenv("TRANSCRIBE_BASE_URL", "https://api.groq.com/openai/v1"),
        asr_model=os.getenv("TRANSCRIBE_MODEL", "whisper-large-v3-turbo"),
        language=os.getenv("TRANSCRIBE_LANGUAGE", "en"),
        transcribe_timeout=float(os.getenv("TRANSCRIBE_TIMEOUT_SEC", "180")),
        transcribe_max_file_mb=int(os.getenv("TRANSCRIBE_MAX_FILE_MB", "25")),
        chunk_seconds=int(os.getenv("AUDIO_CHUNK_SECONDS", "600")),
        video_max_size_mb=int(os.getenv("VIDEO_MAX_SIZE_MB", "50")),
        video_target_size_mb=int(os.getenv("VIDEO_TARGET_SIZE_MB", "49")),
        extract_max_filesize_mb=int(os.getenv("EXTRACT_MAX_FILESIZE_MB", "50")),
        ytdlp_timeout=int(os.getenv("YTDLP_TIMEOUT_SEC", "180")),
        stream_timeout=int(os.getenv("STREAM_TIMEOUT_SEC", "120")),
        ffmpeg_timeout=int(os.getenv("FFMPEG_TIMEOUT_SEC", "120")),
        ffmpeg_compress_timeout=int(os.getenv("FFMPEG_COMPRESS_TIMEOUT_SEC", "300")),
        ffprobe_timeout=int(os.getenv("FFPROBE_TIMEOUT_SEC", "15")),
        cookies_path=_env_path("YTDLP_COOKIES_PATH"),
        proxy_list_path=_env_path("YTDLP_PROXY_LIST_PATH"),
        archive_dir=_env_path("VIDEO_ARCHIVE_DIR"),
        allow_private_network=_env_bool("ALLOW_PRIVATE_NETWORK_URLS"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
