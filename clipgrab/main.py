import argparse
import shutil
import sys
from pathlib import Path

from .config import get_settings
from .errors import ClipgrabError
from .pipeline.models import MODES, SUBTITLE_FORMATS, ExtractResult, MediaRequest
from .pipeline.runner import PipelineFactory
from .platforms.resolver import platform_label
from .utils.file import ensure_dir
from .utils.logger import logger, setup_logging


def _export(result: ExtractResult, output_dir: Path) -> list[Path]:
    ensure_dir(output_dir)
    saved: list[Path] = []
    for path in (result.subtitle_path, result.audio_path, result.video_path):
        if path is None:
            continue
        target = output_dir / path.name
        shutil.copy2(path, target)
        saved.append(target)
    if result.transcript:
        target = output_dir / "transcript.txt"
        target.write_text(result.transcript + "\n", encoding="utf-8")
        saved.append(target)
    return saved


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Download, shrink and transcribe a media link")
    parser.add_argument("url", help="Video URL, Reddit post link or Reddit post id")
    parser.add_argument("--mode", choices=MODES, default="all")
    parser.add_argument("--subs", choices=SUBTITLE_FORMATS, help="Caption format for YouTube links")
    parser.add_argument("--output-dir", default="outputs", help="Where to copy the produced files")
    parser.add_argument("--keep", action="store_true", help="Keep the temporary workspace")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level)

    runner = PipelineFactory(settings).create()
    request = MediaRequest(url=args.url, mode=args.mode, subtitle_format=args.subs)
    try:
        result = runner.run(request, on_progress=lambda message: print(f"... {message}"))
    except ClipgrabError as exc:
        logger.error("[main] {}", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        print(f"{platform_label(result.platform)}: {result.title}")
        if result.duration:
            print(f"Duration: {result.duration:.0f}s")
        for path in _export(result, Path(args.output_dir)):
            print(f"Saved {path}")
        if result.transcript:
            print()
            print(result.transcript)
        for warning in result.warnings:
            print(f"Warning: {warning}", file=sys.stderr)
    finally:
        if args.keep and result.workspace is not None:
            print(f"Workspace kept at {result.workspace.path}")
        else:
            result.cleanup()
    return 0


if __name__ == "__main__":
    sys.exit(main())
