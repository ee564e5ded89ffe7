from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

import requests
from loguru import logger

from .base import BasePlatform, host_matches
from ..errors import ProtocolRejected
from ..pipeline.models import DashSource, ExternalSource, NoSource, VideoSource
from ..utils.url_guard import UrlPredicate, is_valid_protocol


REDDIT_HEADERS = {"User-Agent": "clipgrab/1.0"}
REDDIT_TIMEOUT = (15, 30)
MAX_HTML_BYTES = 10 * 1024 * 1024
MAX_REDIRECTS = 5

_BARE_PREFIXES = (
    "reddit.com",
    "old.reddit.com",
    "new.reddit.com",
    "m.reddit.com",
    "redd.it",
    "v.redd.it",
)
_OLD_REDDIT_HOSTS = ("www.reddit.com", "new.reddit.com", "m.reddit.com", "reddit.com")

_POST_ID = re.compile(r"^[a-z0-9]{5,10}$", re.IGNORECASE)
_DASH_URL = re.compile(r"https?://v\.redd\.it/[a-z0-9]+/DASHPlaylist\.mpd", re.IGNORECASE)
_VREDDIT_ID = re.compile(r"v\.redd\.it/([a-z0-9]+)", re.IGNORECASE)
_EXTERNAL_EMBED = re.compile(r'data-url="(https?://[^"]+)"')
_IMAGE_URL = re.compile(r"\.(jpg|jpeg|png|gif|webp)(\?|$)", re.IGNORECASE)


def first_token(value: str) -> str | None:
    parts = value.split()
    return parts[0] if parts else None


def ensure_url(token: str) -> str | None:
    url = None
    if token.startswith("http://") or token.startswith("https://"):
        url = token
    elif token.startswith("www.") or token.startswith(_BARE_PREFIXES):
        url = f"https://{token}"
    elif _POST_ID.match(token):
        url = f"https://www.reddit.com/comments/{token}"
    if url and not is_valid_protocol(url):
        return None
    return url


def is_reddit_host(host: str) -> bool:
    return host_matches(host, ("reddit.com",)) or host == "redd.it"


def dash_url_from_id(video_id: str) -> str:
    return f"https://v.redd.it/{video_id}/DASHPlaylist.mpd"


def normalize_html(html: str) -> str:
    return html.replace("\\u0026", "&").replace("\\/", "/")


def extract_dash_url(html: str) -> str | None:
    normalized = normalize_html(html)
    match = _DASH_URL.search(normalized)
    if match:
        return match.group(0)
    match = _VREDDIT_ID.search(normalized)
    return dash_url_from_id(match.group(1)) if match else None


def extract_external_url(html: str) -> str | None:
    match = _EXTERNAL_EMBED.search(html)
    if not match:
        return None
    url = match.group(1)
    if "reddit.com" in url or "redd.it" in url:
        return None
    if _IMAGE_URL.search(url):
        return None
    return url if is_valid_protocol(url) else None


def to_old_reddit(url: str) -> str:
    parsed = urlparse(url)
    if parsed.hostname in _OLD_REDDIT_HOSTS:
        netloc = parsed.netloc.replace(parsed.hostname, "old.reddit.com", 1)
        return parsed._replace(netloc=netloc).geturl()
    return url


def guarded_get(url: str, is_allowed: UrlPredicate, **kwargs) -> requests.Response:
    """GET that follows redirects by hand so every hop passes the URL guard before it is requested."""
    for _ in range(MAX_REDIRECTS + 1):
        if not is_allowed(url):
            raise ProtocolRejected(f"Redirect hop points to a private network address: {url}")
        resp = requests.get(
            url,
            headers=REDDIT_HEADERS,
            timeout=REDDIT_TIMEOUT,
            allow_redirects=False,
            stream=True,
            **kwargs,
        )
        if not resp.is_redirect:
            return resp
        resp.close()
        try:
            url = urljoin(url, resp.headers["Location"])
        except ValueError as exc:
            raise requests.InvalidURL(f"Bad redirect target: {exc}") from exc
        logger.debug("[reddit] redirect -> {}", url)
    raise requests.TooManyRedirects(f"Exceeded {MAX_REDIRECTS} redirects")


def resolve_final_url(url: str, is_allowed: UrlPredicate) -> str:
    resp = guarded_get(url, is_allowed)
    resp.close()
    return resp.url or url


def fetch_html(url: str, is_allowed: UrlPredicate) -> str:
    resp = guarded_get(url, is_allowed, cookies={"over18": "1"})
    try:
        resp.raise_for_status()
        data = bytearray()
        for chunk in resp.iter_content(chunk_size=65536):
            data.extend(chunk)
            if len(data) > MAX_HTML_BYTES:
                break
    finally:
        resp.close()
    return data[:MAX_HTML_BYTES].decode(resp.encoding or "utf-8", errors="replace")


class RedditPlatform(BasePlatform):
    name = "reddit"
    label = "Reddit"
    domains = ("reddit.com", "redd.it")

    def matches(self, value: str) -> bool:
        token = first_token(value)
        if not token:
            return False
        if "DASHPlaylist.mpd" in token:
            return True
        url = ensure_url(token)
        if not url:
            return False
        try:
            host = (urlparse(url).hostname or "").lower()
        except ValueError:
            return False
        return host_matches(host, self.domains)

    def resolve(self, value: str, is_allowed: UrlPredicate) -> VideoSource:
        token = first_token(value)
        logger.debug("[reddit] input {!r} -> token {!r}", value, token)
        if not token:
            return NoSource("Empty input")

        url = ensure_url(token)
        if not url:
            return NoSource(f"Not a Reddit link: {token}")
        if not is_allowed(url):
            logger.debug("[reddit] blocked url {}", url)
            return NoSource("URL points to a private network address")

        if "DASHPlaylist.mpd" in token:
            return DashSource(url)

        host = (urlparse(url).hostname or "").lower()
        if host == "v.redd.it":
            video_id = urlparse(url).path.lstrip("/").split("/")[0]
            return DashSource(dash_url_from_id(video_id)) if video_id else NoSource("Missing v.redd.it id")

        if not is_reddit_host(host):
            return NoSource(f"Not a Reddit host: {host}")

        try:
            final_url = resolve_final_url(url, is_allowed)
        except ProtocolRejected as exc:
            logger.warning("[reddit] {}", exc)
            return NoSource("Redirect target points to a private network address")
        except requests.RequestException as exc:
            logger.warning("[reddit] failed to resolve {}: {}", url, exc)
            return NoSource(f"Failed to resolve URL: {exc}")
        logger.debug("[reddit] final url {}", final_url)
        if not is_allowed(final_url):
            return NoSource("Redirect target points to a private network address")
        final_host = (urlparse(final_url).hostname or "").lower()
        if not is_reddit_host(final_host):
            return NoSource(f"Redirect left Reddit: {final_host}")

        page_url = to_old_reddit(final_url)
        try:
            html = fetch_html(page_url, is_allowed)
        except ProtocolRejected as exc:
            logger.warning("[reddit] {}", exc)
            return NoSource("Redirect target points to a private network address")
        except requests.RequestException as exc:
            logger.warning("[reddit] failed to fetch {}: {}", page_url, exc)
            return NoSource(f"Failed to fetch page: {exc}")
        if not html:
            return NoSource("Empty response from page")
        logger.debug("[reddit] html length {} chars", len(html))

        dash_url = extract_dash_url(html)
        if dash_url:
            if not is_allowed(dash_url):
                return NoSource("DASH URL points to a private network address")
            return DashSource(dash_url)

        external_url = extract_external_url(html)
        if external_url:
            logger.debug("[reddit] external embed {}", external_url)
            if not is_allowed(external_url):
                return NoSource("Embedded URL points to a private network address")
            return ExternalSource(external_url)

        return NoSource("No video found in Reddit post")
