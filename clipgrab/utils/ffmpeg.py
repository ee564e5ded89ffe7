from __future__ import annotations

import math
from pathlib import Path

import ffmpeg

from ..errors import CompressionFailed, CommandFailed
from .file import file_size
from .process import run_command


AUDIO_BITRATE_KBPS = 128
CRF = 28
MAX_HEIGHT = 720


def probe_duration(path: Path, timeout: float = 15) -> float:
    completed = run_command(
        [
            "ffprobe",
            "-i", str(path),
            "-show_entries", "format=duration",
            "-v", "quiet",
            "-of", "csv=p=0",
        ],
        timeout,
    )
    raw = completed.stdout.strip()
    try:
        duration = float(raw)
    except ValueError:
        duration = float("nan")
    if math.isnan(duration) or duration <= 0:
        raise CommandFailed("ffprobe", f"Invalid duration: {raw}")
    return duration


def merge_streams(video_path: Path, audio_path: Path, output_path: Path, timeout: float = 120) -> Path:
    args = (
        ffmpeg
        .output(
            ffmpeg.input(str(video_path)),
            ffmpeg.input(str(audio_path)),
            str(output_path),
            c="copy",
            movflags="+faststart",
        )
        .overwrite_output()
        .compile()
    )
    run_command(args, timeout)
    return output_path


def compress_crf(input_path: Path, output_path: Path, timeout: float = 300) -> int:
    args = (
        ffmpeg
        .input(str(input_path))
        .output(
            str(output_path),
            vf=f"scale=-2:{MAX_HEIGHT}",
            preset="medium",
            crf=CRF,
            movflags="+faststart",
            **{"c:v": "libx264", "c:a": "aac", "b:a": f"{AUDIO_BITRATE_KBPS}k"},
        )
        .overwrite_output()
        .compile()
    )
    run_command(args, timeout)
    return file_size(output_path)


def two_pass_bitrate(target_size_mb: float, duration: float) -> int:
    return math.floor(target_size_mb * 8192 / duration - AUDIO_BITRATE_KBPS)


def compress_two_pass(
    input_path: Path,
    output_path: Path,
    target_size_mb: float,
    duration: float,
    timeout: float = 300,
) -> int:
    bitrate = two_pass_bitrate(target_size_mb, duration)
    if bitrate <= 0:
        raise CompressionFailed("Video too long to compress to target size")

    passlog = str(output_path.parent / "ffmpeg2pass")
    video_opts = {"c:v": "libx264", "b:v": f"{bitrate}k", "passlogfile": passlog}

    analysis = (
        ffmpeg
        .input(str(input_path))
        .output("/dev/null", an=None, f="mp4", **video_opts, **{"pass": 1})
        .overwrite_output()
        .compile()
    )
    run_command(analysis, timeout)

    final = (
        ffmpeg
        .input(str(input_path))
        .output(
            str(output_path),
            movflags="+faststart",
            **video_opts,
            **{"pass": 2, "c:a": "aac", "b:a": f"{AUDIO_BITRATE_KBPS}k"},
        )
        .overwrite_output()
        .compile()
    )
    run_command(final, timeout)
    return file_size(output_path)


def chunk_count(duration: float, chunk_seconds: int) -> int:
    return math.ceil(duration / chunk_seconds)


def split_audio(
    audio_path: Path,
    output_dir: Path,
    segment_seconds: int = 600,
    probe_timeout: float = 15,
    timeout: float = 120,
) -> list[Path]:
    duration = probe_duration(audio_path, probe_timeout)
    total = chunk_count(duration, segment_seconds)
    if total <= 1:
        return [audio_path]

    output_dir.mkdir(parents=True, exist_ok=True)
    parts: list[Path] = []
    for index in range(total):
        part = output_dir / f"chunk_{index}.mp3"
        args = (
            ffmpeg
            .input(str(audio_path))
            .output(
                str(part),
                ss=index * segment_seconds,
                t=segment_seconds,
                **{"c:a": "libmp3lame", "q:a": 2},
            )
            .overwrite_output()
            .compile()
        )
        run_command(args, timeout)
        if part.exists() and file_size(part) > 0:
            parts.append(part)

    if not parts:
        raise CommandFailed("ffmpeg", "Audio chunking produced no output")
    return parts
