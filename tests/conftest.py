import subprocess
from pathlib import Path

import pytest

from clipgrab.config import Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        api_key="test-key",
        video_max_size_mb=1,
        video_target_size_mb=1,
        transcribe_max_file_mb=1,
        archive_dir=tmp_path / "archive",
    )


@pytest.fixture
def completed():
    def _make(args=None, stdout: str = "", stderr: str = "", returncode: int = 0):
        return subprocess.CompletedProcess(args or [], returncode, stdout=stdout, stderr=stderr)

    return _make


@pytest.fixture
def make_file():
    def _make(path: Path, size: int = 16) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\0" * size)
        return path

    return _make
