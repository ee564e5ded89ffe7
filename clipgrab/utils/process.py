from __future__ import annotations

import subprocess
from typing import Sequence

from loguru import logger

from ..errors import CommandFailed


def run_command(args: Sequence[str], timeout: float) -> subprocess.CompletedProcess:
    """Run an external tool with a wall-clock timeout.

    The child is killed when the timeout expires. Any failure (missing binary, timeout,
    non-zero exit) is raised as CommandFailed carrying the truncated stderr.
    """
    args = [str(arg) for arg in args]
    name = args[0]
    logger.debug("[process] {} ({}s)", " ".join(args), timeout)
    try:
        completed = subprocess.run(args, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as exc:
        raise CommandFailed(name, f"{name} not found in PATH") from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandFailed(name, timed_out=True) from exc
    if completed.returncode != 0:
        raise CommandFailed(name, completed.stderr or completed.stdout or "", completed.returncode)
    return completed
