from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal, Optional, Union

from .workspace import Workspace


Mode = Literal["text", "audio", "video", "all"]
SubtitleFormat = Literal["text", "srt", "vtt"]
Platform = Literal["youtube", "instagram", "tiktok", "reddit", "unknown"]

MODES = ("text", "audio", "video", "all")
SUBTITLE_FORMATS = ("text", "srt", "vtt")

ProgressCallback = Callable[[str], None]


@dataclass(frozen=True)
class MediaRequest:
    url: str
    mode: Mode = "all"
    subtitle_format: Optional[SubtitleFormat] = None

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"Unsupported mode: {self.mode}")
        if self.subtitle_format is not None and self.subtitle_format not in SUBTITLE_FORMATS:
            raise ValueError(f"Unsupported subtitle format: {self.subtitle_format}")

    @property
    def wants_text(self) -> bool:
        return self.mode in ("text", "all")

    @property
    def wants_audio(self) -> bool:
        return self.mode in ("audio", "all")

    @property
    def wants_video(self) -> bool:
        return self.mode in ("video", "all")


@dataclass(frozen=True)
class DashSource:
    manifest_url: str


@dataclass(frozen=True)
class ExternalSource:
    url: str


@dataclass(frozen=True)
class NoSource:
    reason: str = "no video source found"


VideoSource = Union[DashSource, ExternalSource, NoSource]


@dataclass(frozen=True)
class ManifestSelection:
    video_url: Optional[str] = None
    audio_url: Optional[str] = None


@dataclass
class MediaMeta:
    title: str = "Untitled"
    duration: Optional[float] = None


@dataclass
class Transcript:
    text: str
    chunks: int = 1


@dataclass
class ExtractResult:
    platform: Platform
    title: str
    url: str
    duration: Optional[float] = None
    transcript: Optional[str] = None
    subtitle_path: Optional[Path] = None
    subtitle_format: Optional[SubtitleFormat] = None
    audio_path: Optional[Path] = None
    video_path: Optional[Path] = None
    warnings: list[str] = field(default_factory=list)
    workspace: Optional[Workspace] = field(default=None, repr=False)

    @property
    def has_artifacts(self) -> bool:
        return any(
            (self.transcript, self.subtitle_path, self.audio_path, self.video_path)
        )

    def cleanup(self) -> None:
        if self.workspace is not None:
            self.workspace.cleanup()
