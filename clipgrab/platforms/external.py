from __future__ import annotations

from loguru import logger

from .base import BasePlatform
from ..pipeline.models import ExternalSource, NoSource, VideoSource
from ..utils.url_guard import UrlPredicate, is_valid_protocol


class ExternalPlatform(BasePlatform):
    """Sites handed to yt-dlp as-is."""

    def resolve(self, value: str, is_allowed: UrlPredicate) -> VideoSource:
        url = value.strip()
        if not is_valid_protocol(url):
            return NoSource(f"Unsupported URL: {url}")
        if not is_allowed(url):
            logger.debug("[{}] blocked url {}", self.name, url)
            return NoSource("URL points to a private network address")
        return ExternalSource(url)


class YouTubePlatform(ExternalPlatform):
    name = "youtube"
    label = "YouTube"
    domains = ("youtube.com", "youtu.be", "youtube-nocookie.com")


class InstagramPlatform(ExternalPlatform):
    name = "instagram"
    label = "Instagram"
    domains = ("instagram.com", "instagr.am")


class TikTokPlatform(ExternalPlatform):
    name = "tiktok"
    label = "TikTok"
    domains = ("tiktok.com",)


class GenericPlatform(ExternalPlatform):
    name = "unknown"
    label = "Unknown"

    def matches(self, value: str) -> bool:
        return True
