from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

from loguru import logger


class Workspace:
    """Per-run scratch directory, removed as a unit by cleanup()."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._removed = False

    @classmethod
    def create(cls, root: Path | None = None, prefix: str = "clipgrab-") -> "Workspace":
        if root is not None:
            root.mkdir(parents=True, exist_ok=True)
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=str(root) if root else None))
        logger.debug("[workspace] created {}", path)
        return cls(path)

    @property
    def removed(self) -> bool:
        return self._removed

    def subdir(self, name: str) -> Path:
        path = self.path / name
        path.mkdir(parents=True, exist_ok=True)
        return path

    def cleanup(self) -> None:
        if self._removed:
            return
        self._removed = True
        try:
            shutil.rmtree(self.path)
            logger.debug("[workspace] removed {}", self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("[workspace] cleanup failed for {}: {}", self.path, exc)
