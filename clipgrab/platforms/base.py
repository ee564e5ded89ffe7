from __future__ import annotations

from abc import ABC, abstractmethod
from urllib.parse import urlparse

from ..pipeline.models import VideoSource
from ..utils.url_guard import UrlPredicate


def host_of(value: str) -> str:
    value = value.strip()
    if "://" not in value:
        value = f"https://{value}"
    try:
        return (urlparse(value).hostname or "").lower()
    except ValueError:
        return ""


def host_matches(host: str, domains: tuple[str, ...]) -> bool:
    return any(host == domain or host.endswith(f".{domain}") for domain in domains)


class BasePlatform(ABC):
    name: str = "base"
    label: str = "Unknown"
    domains: tuple[str, ...] = ()

    def matches(self, value: str) -> bool:
        return host_matches(host_of(value), self.domains)

    @abstractmethod
    def resolve(self, value: str, is_allowed: UrlPredicate) -> VideoSource:
        raise NotImplementedError
