from __future__ import annotations

import shutil
import time
from pathlib import Path

from loguru import logger

from ..config import Settings
from ..errors import CommandFailed, CompressionFailed, DownloadFailed, MergeFailed, SizeExceeded
from ..utils import ffmpeg as ff
from ..utils.file import file_size, find_output, size_mb
from ..utils.process import run_command
from .models import MediaMeta, ProgressCallback, SubtitleFormat
from .proxy import ProxyRotation, should_retry_with_proxy
from .steps.download import (
    CAPTIONS_TIMEOUT,
    META_TIMEOUT,
    cookie_args,
    curl_args,
    parse_meta,
    with_proxy,
    ytdlp_audio_args,
    ytdlp_caption_args,
    ytdlp_meta_args,
    ytdlp_video_args,
)


def _notify(on_progress: ProgressCallback | None, message: str) -> None:
    if on_progress:
        on_progress(message)


class MediaDownloader:
    def __init__(self, settings: Settings, proxies: ProxyRotation | None = None) -> None:
        self.settings = settings
        self.proxies = proxies if proxies is not None else ProxyRotation()

    def _run(self, args: list[str], timeout: float, on_progress: ProgressCallback | None = None):
        try:
            return run_command(args, timeout)
        except CommandFailed as exc:
            if not should_retry_with_proxy(str(exc)):
                raise
            proxy = self.proxies.next()
            if not proxy:
                raise
            logger.info("[download] retrying {} with proxy after: {}", args[0], str(exc)[:100])
            _notify(on_progress, "Retrying with proxy...")
            try:
                return run_command(with_proxy(args, proxy), timeout)
            except CommandFailed as retry_exc:
                logger.warning("[download] proxy retry failed: {}", str(retry_exc)[:100])
                raise exc from None

    def _cookies(self) -> list[str]:
        return cookie_args(self.settings.cookies_path)

    def fetch_stream(self, url: str, dest: Path, on_progress: ProgressCallback | None = None) -> int:
        max_time = self.settings.stream_timeout
        try:
            self._run(curl_args(url, dest, max_time), max_time + 10, on_progress)
        except CommandFailed as exc:
            raise DownloadFailed(f"Failed to download stream: {exc}") from exc
        if not dest.exists():
            raise DownloadFailed(f"Download produced no file: {dest.name}")
        size = file_size(dest)
        logger.info("[download] {} {}", dest.name, size_mb(size))
        return size

    def fetch_meta(self, url: str, on_progress: ProgressCallback | None = None) -> MediaMeta:
        try:
            completed = self._run(ytdlp_meta_args(url, self._cookies()), META_TIMEOUT, on_progress)
        except CommandFailed as exc:
            logger.warning("[download] metadata unavailable: {}", exc)
            return MediaMeta()
        title, duration = parse_meta(completed.stdout)
        return MediaMeta(title=title, duration=duration)

    def download_audio(self, url: str, output_dir: Path, on_progress: ProgressCallback | None = None) -> Path:
        args = ytdlp_audio_args(url, output_dir, self._cookies())
        try:
            self._run(args, self.settings.ytdlp_timeout, on_progress)
        except CommandFailed as exc:
            raise DownloadFailed(str(exc)) from exc
        path = find_output(output_dir, "audio.")
        if not path:
            raise DownloadFailed("yt-dlp produced no audio output")
        return path

    def download_video(
        self,
        url: str,
        output_dir: Path,
        on_progress: ProgressCallback | None = None,
        clamp_size: bool = True,
    ) -> Path:
        max_filesize = self.settings.extract_max_filesize_mb if clamp_size else None
        args = ytdlp_video_args(url, output_dir, self._cookies(), max_filesize)
        try:
            self._run(args, self.settings.ytdlp_timeout, on_progress)
        except CommandFailed as exc:
            raise DownloadFailed(str(exc)) from exc
        path = find_output(output_dir, "video.")
        if not path:
            raise DownloadFailed("yt-dlp produced no video output")
        return path

    def download_captions(
        self,
        url: str,
        output_dir: Path,
        subtitle_format: SubtitleFormat,
        on_progress: ProgressCallback | None = None,
    ) -> Path | None:
        args = ytdlp_caption_args(url, output_dir, subtitle_format, self._cookies())
        try:
            self._run(args, CAPTIONS_TIMEOUT, on_progress)
        except CommandFailed as exc:
            logger.warning("[download] captions unavailable: {}", exc)
            return None
        return find_output(output_dir, "subs.", (".srt", ".vtt"))


class PostProcessor:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def probe_duration(self, path: Path) -> float:
        return ff.probe_duration(path, self.settings.ffprobe_timeout)

    def merge(self, video_path: Path, audio_path: Path, output_path: Path) -> Path:
        try:
            ff.merge_streams(video_path, audio_path, output_path, self.settings.ffmpeg_timeout)
        except CommandFailed as exc:
            raise MergeFailed(f"ffmpeg merge failed: {exc.stderr or exc}") from exc
        if not output_path.exists():
            raise MergeFailed("ffmpeg merge produced no output")
        return output_path

    def split_audio(self, audio_path: Path, output_dir: Path) -> list[Path]:
        return ff.split_audio(
            audio_path,
            output_dir,
            segment_seconds=self.settings.chunk_seconds,
            probe_timeout=self.settings.ffprobe_timeout,
            timeout=self.settings.ffmpeg_timeout,
        )

    def archive(self, path: Path, archive_dir: Path) -> Path | None:
        try:
            archive_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
            saved = archive_dir / f"original-{int(time.time() * 1000)}{path.suffix or '.mp4'}"
            shutil.copyfile(path, saved)
        except OSError as exc:
            logger.warning("[postprocess] failed to archive original: {}", exc)
            return None
        logger.info("[postprocess] archived original ({}) to {}", size_mb(file_size(saved)), saved)
        return saved

    def fit_video(
        self,
        path: Path,
        work_dir: Path,
        archive_dir: Path | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> Path:
        """Bring a video under the delivery ceiling.

        Returns the input untouched when it already fits. Otherwise archives the original,
        tries a CRF encode and then a two-pass encode at the target size.
        """
        limit = self.settings.video_max_bytes
        size = file_size(path)
        if size <= limit:
            return path

        self.archive(path, archive_dir or work_dir / "originals")
        _notify(on_progress, "Compressing video...")
        logger.info("[postprocess] video {} exceeds limit, trying CRF compress", size_mb(size))

        timeout = self.settings.ffmpeg_compress_timeout
        crf_path = work_dir / "video_crf.mp4"
        try:
            crf_size = ff.compress_crf(path, crf_path, timeout)
        except CommandFailed as exc:
            raise CompressionFailed(f"ffmpeg CRF compress failed: {exc.stderr or exc}") from exc
        logger.info("[postprocess] CRF compress: {}", size_mb(crf_size))
        if crf_size <= limit:
            return crf_path

        target = self.settings.video_target_size_mb
        logger.info("[postprocess] CRF still too large, trying two-pass at {}MB target", target)
        two_pass_path = work_dir / "video_2pass.mp4"
        try:
            duration = self.probe_duration(path)
            two_pass_size = ff.compress_two_pass(path, two_pass_path, target, duration, timeout)
        except CommandFailed as exc:
            raise CompressionFailed(f"ffmpeg two-pass compress failed: {exc.stderr or exc}") from exc
        logger.info("[postprocess] two-pass compress: {}", size_mb(two_pass_size))
        if two_pass_size > limit:
            raise SizeExceeded(
                f"Video is too large even after compression ({size_mb(two_pass_size)})"
            )
        return two_pass_path
