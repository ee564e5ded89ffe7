from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from loguru import logger


# failure messages that point at an IP block, geo restriction or denied access
PROXY_RETRY_PATTERNS = [
    re.compile(r"ip.+block", re.IGNORECASE),
    re.compile(r"not comfortable for some audiences", re.IGNORECASE),
    re.compile(r"log in for access", re.IGNORECASE),
    re.compile(r"blocked from accessing", re.IGNORECASE),
    re.compile(r"access denied", re.IGNORECASE),
    re.compile(r"403"),
]


def should_retry_with_proxy(message: str) -> bool:
    return any(pattern.search(message or "") for pattern in PROXY_RETRY_PATTERNS)


class ProxyRotation:
    """Round-robin over a fixed proxy pool.

    The index lives on the instance, so every run sharing one rotation advances the same
    counter while separate rotations stay independent.
    """

    def __init__(self, proxies: Iterable[str] | None = None) -> None:
        self.proxies = [p for p in (proxies or []) if p]
        self._index = 0

    @classmethod
    def from_file(cls, path: Path | None) -> "ProxyRotation":
        if not path:
            return cls()
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            logger.warning("[proxy] proxy list not found: {}", path)
            return cls()
        except OSError as exc:
            logger.warning("[proxy] failed to load proxy list {}: {}", path, exc)
            return cls()
        proxies = [line.strip() for line in lines]
        proxies = [line for line in proxies if line and not line.startswith("#")]
        logger.info("[proxy] loaded {} proxies from {}", len(proxies), path)
        return cls(proxies)

    def __len__(self) -> int:
        return len(self.proxies)

    def next(self) -> str | None:
        if not self.proxies:
            return None
        proxy = self.proxies[self._index % len(self.proxies)]
        self._index += 1
        return proxy
