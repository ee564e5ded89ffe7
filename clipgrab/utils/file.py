from pathlib import Path
from urllib.parse import urlparse


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def file_size(path: Path) -> int:
    return path.stat().st_size


def size_mb(size: int) -> str:
    return f"{size / 1024 / 1024:.1f}MB"


def url_extension(url: str, fallback: str) -> str:
    try:
        suffix = Path(urlparse(url).path).suffix
    except ValueError:
        return fallback
    return suffix or fallback


def find_output(directory: Path, prefix: str, suffixes: tuple[str, ...] | None = None) -> Path | None:
    for path in sorted(directory.iterdir()):
        if not path.is_file() or not path.name.startswith(prefix):
            continue
        if suffixes and path.suffix.lower() not in suffixes:
            continue
        return path
    return None
