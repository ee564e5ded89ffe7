from __future__ import annotations

from typing import Iterable

from loguru import logger

from .base import BasePlatform
from .external import GenericPlatform, InstagramPlatform, TikTokPlatform, YouTubePlatform
from .reddit import RedditPlatform
from ..pipeline.models import Platform, VideoSource
from ..utils.url_guard import UrlPredicate, make_url_guard


def default_platforms() -> list[BasePlatform]:
    return [
        YouTubePlatform(),
        InstagramPlatform(),
        TikTokPlatform(),
        RedditPlatform(),
        GenericPlatform(),
    ]


class PlatformResolver:
    def __init__(
        self,
        platforms: Iterable[BasePlatform] | None = None,
        url_guard: UrlPredicate | None = None,
    ) -> None:
        self.platforms = list(platforms) if platforms else default_platforms()
        self.url_guard = url_guard or make_url_guard()

    def platform_for(self, value: str) -> BasePlatform:
        for platform in self.platforms:
            if platform.matches(value):
                return platform
        return GenericPlatform()

    def detect(self, value: str) -> Platform:
        return self.platform_for(value).name

    def resolve(self, value: str) -> tuple[Platform, VideoSource]:
        platform = self.platform_for(value)
        source = platform.resolve(value, self.url_guard)
        logger.info("[resolver] {} -> {}", platform.name, type(source).__name__)
        return platform.name, source


_DEFAULT = PlatformResolver(url_guard=lambda url: True)


def detect_platform(value: str) -> Platform:
    return _DEFAULT.detect(value)


def platform_label(platform: str) -> str:
    for candidate in _DEFAULT.platforms:
        if candidate.name == platform:
            return candidate.label
    return "Unknown"
