from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from ..asr.providers import OpenAICompatibleASR
from ..asr.router import ASRRouter
from ..config import Settings
from ..errors import (
    ClipgrabError,
    CommandFailed,
    CompressionFailed,
    DownloadFailed,
    MergeFailed,
    ProtocolRejected,
    SizeExceeded,
    SourceNotFound,
    TranscriptionFailed,
)
from ..platforms.resolver import PlatformResolver
from ..utils.file import file_size, size_mb, url_extension
from ..utils.text import captions_to_text
from ..utils.url_guard import make_url_guard
from .components import MediaDownloader, PostProcessor
from .models import (
    DashSource,
    ExtractResult,
    ManifestSelection,
    MediaRequest,
    NoSource,
    ProgressCallback,
    Platform,
)
from .proxy import ProxyRotation
from .steps.manifest import select_streams
from .workspace import Workspace


CAPTION_PLATFORMS = ("youtube",)
DASH_TITLE = "Reddit video"

ManifestLoader = Callable[[str], Optional[ManifestSelection]]


class PipelineRunner:
    def __init__(
        self,
        settings: Settings,
        platform_resolver: PlatformResolver,
        downloader: MediaDownloader,
        post_processor: PostProcessor,
        asr_router: ASRRouter,
        manifest_loader: ManifestLoader = select_streams,
        workspace_root: Path | None = None,
    ) -> None:
        self.settings = settings
        self.platform_resolver = platform_resolver
        self.downloader = downloader
        self.post_processor = post_processor
        self.asr_router = asr_router
        self.manifest_loader = manifest_loader
        self.workspace_root = workspace_root

    def run(self, request: MediaRequest, on_progress: ProgressCallback | None = None) -> ExtractResult:
        """Fetch, convert and transcribe one media link.

        The returned result owns a workspace holding every produced file; the caller must call
        result.cleanup() once the files are consumed. On failure the workspace is removed
        before the error propagates.
        """

        def notify(message: str) -> None:
            logger.info("[pipeline] {}", message)
            if on_progress:
                on_progress(message)

        workspace = Workspace.create(self.workspace_root)
        try:
            platform, source = self.platform_resolver.resolve(request.url)
            if isinstance(source, NoSource):
                raise SourceNotFound(source.reason)
            result = ExtractResult(platform=platform, title="Untitled", url=request.url, workspace=workspace)
            logger.info(
                "[pipeline] url={} mode={} platform={} source={}",
                request.url,
                request.mode,
                platform,
                type(source).__name__,
            )

            if isinstance(source, DashSource):
                audio, video = self._acquire_dash(request, source, result, notify)
            else:
                audio, video = self._acquire_external(request, source.url, platform, result, notify)
            self._finish(request, result, audio, video, notify)

            if not result.has_artifacts:
                detail = "; ".join(result.warnings) or "nothing was produced"
                raise DownloadFailed(f"No media could be extracted: {detail}")
        except BaseException:
            workspace.cleanup()
            raise
        return result

    def _degrade(self, result: ExtractResult, required: bool, message: str, exc: ClipgrabError) -> None:
        if required:
            raise exc
        logger.warning("[pipeline] {}: {}", message, exc)
        result.warnings.append(f"{message}: {exc}")

    def _acquire_external(
        self,
        request: MediaRequest,
        url: str,
        platform: Platform,
        result: ExtractResult,
        notify: ProgressCallback,
    ) -> tuple[Path | None, Path | None]:
        work = result.workspace.path
        # reddit posts that embed another site; the embed host decides the format
        embedded = platform == "reddit"

        notify("Fetching metadata...")
        meta = self.downloader.fetch_meta(url, notify)
        result.title = meta.title
        result.duration = meta.duration

        if request.wants_text and platform in CAPTION_PLATFORMS:
            self._fetch_captions(request, url, result, notify)

        audio = None
        has_text = bool(result.transcript or result.subtitle_path)
        if request.wants_audio or (request.wants_text and not has_text):
            notify("Downloading audio...")
            try:
                audio = self.downloader.download_audio(url, work, notify)
            except DownloadFailed as exc:
                self._degrade(result, request.mode != "all", "Audio download failed", exc)

        video = None
        if request.wants_video:
            notify("Downloading video...")
            try:
                video = self.downloader.download_video(url, work, notify, clamp_size=not embedded)
            except DownloadFailed as exc:
                if request.mode != "video" or audio is not None:
                    self._degrade(result, False, "Video download failed", exc)
                else:
                    result.warnings.append(f"Video download failed: {exc}")
                    notify("Downloading audio instead...")
                    try:
                        result.audio_path = self.downloader.download_audio(url, work, notify)
                    except DownloadFailed:
                        raise exc
                    result.warnings.append("Sending audio instead.")
        return audio, video

    def _fetch_captions(
        self,
        request: MediaRequest,
        url: str,
        result: ExtractResult,
        notify: ProgressCallback,
    ) -> None:
        subtitle_format = request.subtitle_format or "text"
        notify(f"Fetching subtitles ({subtitle_format.upper()})...")
        path = self.downloader.download_captions(url, result.workspace.path, subtitle_format, notify)
        if path is not None:
            if subtitle_format != "text":
                result.subtitle_path = path
                result.subtitle_format = subtitle_format
                return
            text = captions_to_text(path.read_text(encoding="utf-8", errors="replace"))
            if text:
                result.transcript = text
                return
        result.warnings.append("No subtitles available. Falling back to Whisper transcription.")

    def _acquire_dash(
        self,
        request: MediaRequest,
        source: DashSource,
        result: ExtractResult,
        notify: ProgressCallback,
    ) -> tuple[Path | None, Path | None]:
        work = result.workspace.path
        is_allowed = self.platform_resolver.url_guard
        result.title = DASH_TITLE

        notify("Reading DASH manifest...")
        selection = self.manifest_loader(source.manifest_url)
        if selection is None:
            raise SourceNotFound("Failed to locate a downloadable stream in the DASH manifest")
        logger.debug("[pipeline] streams video={} audio={}", selection.video_url, selection.audio_url)

        needs_audio = request.wants_audio or request.wants_text
        audio_required = request.mode in ("audio", "text")

        audio_url = selection.audio_url
        if audio_url and not is_allowed(audio_url):
            self._degrade(
                result,
                audio_required,
                "Audio stream skipped",
                ProtocolRejected("Audio stream URL blocked for security reasons"),
            )
            audio_url = None

        audio = None
        if audio_url and (needs_audio or request.wants_video):
            notify("Downloading audio...")
            dest = work / f"audio{url_extension(audio_url, '.mp4')}"
            try:
                self.downloader.fetch_stream(audio_url, dest, notify)
                audio = dest
            except DownloadFailed as exc:
                self._degrade(result, audio_required, "Audio download failed", exc)
        elif needs_audio and not audio_url:
            self._degrade(result, audio_required, "Audio unavailable", DownloadFailed("No audio stream in post"))

        video = None
        if request.wants_video:
            video = self._fetch_dash_video(request, selection.video_url, audio, result, notify)

        if video is not None and audio is not None:
            notify("Merging video and audio...")
            try:
                video = self.post_processor.merge(video, audio, work / "video_merged.mp4")
            except MergeFailed as exc:
                self._degrade(result, False, "Merge failed, sending video without audio", exc)

        probe_target = video or audio
        if probe_target is not None:
            try:
                result.duration = self.post_processor.probe_duration(probe_target)
            except CommandFailed as exc:
                logger.debug("[pipeline] duration probe failed: {}", exc)
        return audio, video

    def _fetch_dash_video(
        self,
        request: MediaRequest,
        video_url: str | None,
        audio: Path | None,
        result: ExtractResult,
        notify: ProgressCallback,
    ) -> Path | None:
        if not video_url:
            self._degrade(result, request.mode == "video", "Video unavailable", DownloadFailed("No video stream in post"))
            return None
        if not self.platform_resolver.url_guard(video_url):
            raise ProtocolRejected("Video stream URL blocked for security reasons")

        notify("Downloading video...")
        dest = result.workspace.path / f"video{url_extension(video_url, '.mp4')}"
        try:
            self.downloader.fetch_stream(video_url, dest, notify)
        except DownloadFailed as exc:
            if request.mode == "video" and audio is not None:
                result.warnings.append(f"Video download failed: {exc}")
                result.audio_path = audio
                result.warnings.append("Sending audio instead.")
            else:
                self._degrade(result, request.mode == "video", "Video download failed", exc)
            return None
        return dest

    def _finish(
        self,
        request: MediaRequest,
        result: ExtractResult,
        audio: Path | None,
        video: Path | None,
        notify: ProgressCallback,
    ) -> None:
        if audio is not None and request.wants_audio:
            result.audio_path = audio

        if request.wants_text and audio is not None and not (result.transcript or result.subtitle_path):
            notify("Transcribing...")
            try:
                result.transcript = self.asr_router.transcribe(audio, notify).text
            except TranscriptionFailed as exc:
                self._degrade(result, request.mode == "text", "Transcription failed", exc)

        if video is not None:
            self._deliver_video(request, result, video, notify)

    def _deliver_video(
        self,
        request: MediaRequest,
        result: ExtractResult,
        video: Path,
        notify: ProgressCallback,
    ) -> None:
        size = file_size(video)
        try:
            result.video_path = self.post_processor.fit_video(
                video,
                result.workspace.path,
                archive_dir=self.settings.archive_dir,
                on_progress=notify,
            )
        except CompressionFailed as exc:
            if request.mode == "video":
                raise
            logger.warning("[pipeline] video not deliverable: {}", exc)
            if isinstance(exc, SizeExceeded):
                result.warnings.append(
                    f"Video is {size_mb(size)}, exceeds the {self.settings.video_max_size_mb}MB limit."
                )
            else:
                result.warnings.append(f"Video compression failed: {exc}")


class PipelineFactory:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def create(self) -> PipelineRunner:
        settings = self.settings
        post_processor = PostProcessor(settings)
        provider = OpenAICompatibleASR(
            api_key=settings.api_key,
            base_url=settings.base_url,
            model=settings.asr_model,
            language=settings.language,
            timeout=settings.transcribe_timeout,
        )
        return PipelineRunner(
            settings=settings,
            platform_resolver=PlatformResolver(url_guard=make_url_guard(settings.allow_private_network)),
            downloader=MediaDownloader(settings, ProxyRotation.from_file(settings.proxy_list_path)),
            post_processor=post_processor,
            asr_router=ASRRouter(settings, provider, post_processor),
        )
