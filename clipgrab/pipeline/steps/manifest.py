from __future__ import annotations

import re
from urllib.parse import urljoin

import requests
from loguru import logger

from ...errors import ManifestError, ManifestMalformed, ManifestTooLarge
from ..models import ManifestSelection


USER_AGENT = "clipgrab/1.0"
FETCH_TIMEOUT = 15

MAX_MANIFEST_BYTES = 512 * 1024
MAX_ADAPTATION_SETS = 20
MAX_REPRESENTATIONS = 50

_ADAPTATION_SET = re.compile(r"<AdaptationSet\b([^>]*)>(.*?)</AdaptationSet>", re.IGNORECASE | re.DOTALL)
_REPRESENTATION = re.compile(
    r"<Representation\b([^>]*?)(?:/>|>(.*?)</Representation>)", re.IGNORECASE | re.DOTALL
)
_BASE_URL = re.compile(r"<BaseURL>([^<]+)</BaseURL>", re.IGNORECASE)
_CONTENT_TYPE = re.compile(r'contentType="([^"]+)"', re.IGNORECASE)
_MIME_TYPE = re.compile(r'mimeType="([^"]+)"', re.IGNORECASE)
_BANDWIDTH = re.compile(r'bandwidth="(\d+)"', re.IGNORECASE)
_MPD_ROOT = re.compile(r"<MPD\b", re.IGNORECASE)


def _base_url(xml: str) -> str | None:
    match = _BASE_URL.search(xml)
    return match.group(1).strip() if match else None


def _media_type(attrs: str) -> str:
    match = _CONTENT_TYPE.search(attrs) or _MIME_TYPE.search(attrs)
    return match.group(1) if match else ""


def _parse(xml: str, manifest_url: str) -> ManifestSelection | None:
    if len(xml.encode("utf-8")) > MAX_MANIFEST_BYTES:
        raise ManifestTooLarge(f"DASH manifest too large ({len(xml)} chars)")
    if not _MPD_ROOT.search(xml):
        raise ManifestMalformed("Not a DASH manifest")

    best: dict[str, tuple[int, str]] = {}
    groups = 0
    representations = 0

    for group in _ADAPTATION_SET.finditer(xml):
        groups += 1
        if groups > MAX_ADAPTATION_SETS:
            logger.warning("[manifest] too many AdaptationSets, stopping parse")
            break

        group_attrs, body = group.group(1), group.group(2)
        group_type = _media_type(group_attrs)
        group_base = _base_url(_REPRESENTATION.sub("", body))

        for rep in _REPRESENTATION.finditer(body):
            representations += 1
            if representations > MAX_REPRESENTATIONS:
                break

            rep_attrs, rep_body = rep.group(1), rep.group(2) or ""
            kind = group_type or _media_type(rep_attrs)
            bandwidth_match = _BANDWIDTH.search(rep_attrs)
            bandwidth = int(bandwidth_match.group(1)) if bandwidth_match else 0

            base = _base_url(rep_body) or group_base
            if not base:
                continue
            try:
                url = urljoin(manifest_url, base)
            except ValueError:
                logger.debug("[manifest] skipping unparseable BaseURL {!r}", base)
                continue

            if re.search("video", kind, re.IGNORECASE):
                key = "video"
            elif re.search("audio", kind, re.IGNORECASE):
                key = "audio"
            else:
                continue
            current = best.get(key)
            if current is None or bandwidth > current[0]:
                best[key] = (bandwidth, url)

        if representations > MAX_REPRESENTATIONS:
            logger.warning("[manifest] too many Representations, stopping parse")
            break

    if not best:
        return None
    video = best.get("video")
    audio = best.get("audio")
    return ManifestSelection(
        video_url=video[1] if video else None,
        audio_url=audio[1] if audio else None,
    )


def parse_manifest(xml: str, manifest_url: str) -> ManifestSelection | None:
    """Pick the highest-bandwidth video and audio representation of a DASH manifest.

    Size and element-count limits bound the work done on hostile input. Any violation or
    malformed document is reported as "no stream" (None) rather than raised.
    """
    try:
        return _parse(xml, manifest_url)
    except ManifestError as exc:
        logger.warning("[manifest] {}", exc)
        return None


def fetch_manifest(manifest_url: str, timeout: float = FETCH_TIMEOUT) -> str:
    response = requests.get(
        manifest_url, headers={"User-Agent": USER_AGENT}, timeout=timeout, stream=True
    )
    try:
        response.raise_for_status()
        data = bytearray()
        for chunk in response.iter_content(chunk_size=8192):
            data.extend(chunk)
            if len(data) > MAX_MANIFEST_BYTES:
                raise ManifestTooLarge(f"DASH manifest larger than {MAX_MANIFEST_BYTES} bytes")
    finally:
        response.close()
    return data.decode(response.encoding or "utf-8", errors="replace")


def select_streams(manifest_url: str, timeout: float = FETCH_TIMEOUT) -> ManifestSelection | None:
    try:
        xml = fetch_manifest(manifest_url, timeout)
    except (requests.RequestException, ManifestError) as exc:
        logger.warning("[manifest] failed to fetch {}: {}", manifest_url, exc)
        return None
    return parse_manifest(xml, manifest_url)
