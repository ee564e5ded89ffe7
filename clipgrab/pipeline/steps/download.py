from __future__ import annotations

from pathlib import Path

from ..models import SubtitleFormat


CONNECT_TIMEOUT = 10
META_TIMEOUT = 30
CAPTIONS_TIMEOUT = 60
EMBED_FORMAT = "best[ext=mp4]/best"


def cookie_args(cookies_path: Path | None) -> list[str]:
    if cookies_path and cookies_path.exists():
        return ["--cookies", str(cookies_path)]
    return []


def with_proxy(args: list[str], proxy: str) -> list[str]:
    # keep the target url last
    return args[:-1] + ["--proxy", proxy, args[-1]]


def curl_args(url: str, dest: Path, max_time: int) -> list[str]:
    return [
        "curl", "-sS", "-f", "-L",
        "--connect-timeout", str(CONNECT_TIMEOUT),
        "--max-time", str(max_time),
        "--retry", "2",
        "--retry-delay", "2",
        "-o", str(dest),
        url,
    ]


def ytdlp_meta_args(url: str, cookies: list[str]) -> list[str]:
    return [
        "yt-dlp",
        "--no-download",
        "--print", "%(title)s\n%(duration)s",
        "--no-playlist",
        "--socket-timeout", "15",
        *cookies,
        url,
    ]


def ytdlp_audio_args(url: str, output_dir: Path, cookies: list[str]) -> list[str]:
    return [
        "yt-dlp",
        "-x",
        "--audio-format", "mp3",
        "--audio-quality", "0",
        "-o", str(output_dir / "audio.%(ext)s"),
        "--no-playlist",
        "--socket-timeout", "30",
        "--retries", "3",
        "--no-warnings",
        *cookies,
        url,
    ]


def ytdlp_video_args(
    url: str,
    output_dir: Path,
    cookies: list[str],
    max_filesize_mb: int | None = None,
) -> list[str]:
    args = [
        "yt-dlp",
        "-f", EMBED_FORMAT,
        "--merge-output-format", "mp4",
        "-o", str(output_dir / "video.%(ext)s"),
        "--no-playlist",
        "--socket-timeout", "30",
        "--retries", "3",
        "--no-warnings",
    ]
    if max_filesize_mb:
        args += ["--max-filesize", f"{max_filesize_mb}M"]
    return args + [*cookies, url]


def ytdlp_caption_args(
    url: str,
    output_dir: Path,
    subtitle_format: SubtitleFormat,
    cookies: list[str],
) -> list[str]:
    sub_format = caption_file_format(subtitle_format)
    return [
        "yt-dlp",
        "--no-download",
        "--write-auto-subs",
        "--write-subs",
        "--sub-langs", "en.*,en",
        "--sub-format", sub_format,
        "--convert-subs", sub_format,
        "-o", str(output_dir / "subs.%(ext)s"),
        "--no-playlist",
        "--socket-timeout", "15",
        *cookies,
        url,
    ]


def caption_file_format(subtitle_format: SubtitleFormat) -> str:
    return "vtt" if subtitle_format == "text" else subtitle_format


def parse_meta(stdout: str) -> tuple[str, float | None]:
    lines = [line.strip() for line in stdout.splitlines()]
    title = lines[0] if lines and lines[0] and lines[0] != "NA" else "Untitled"
    duration = None
    if len(lines) > 1:
        try:
            duration = float(lines[1])
        except ValueError:
            duration = None
    return title, duration
