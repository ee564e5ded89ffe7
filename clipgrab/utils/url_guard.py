from __future__ import annotations

import ipaddress
import socket
from typing import Callable
from urllib.parse import urlparse

from loguru import logger


UrlPredicate = Callable[[str], bool]


def is_valid_protocol(url: str) -> bool:
    try:
        return urlparse(url).scheme in ("http", "https")
    except ValueError:
        return False


def _is_public(address: str) -> bool:
    ip = ipaddress.ip_address(address.split("%", 1)[0])
    return ip.is_global and not ip.is_multicast


def is_url_allowed(url: str, allow_private: bool = False) -> bool:
    if not is_valid_protocol(url):
        return False
    try:
        host = urlparse(url).hostname
    except ValueError:
        return False
    if not host:
        return False
    if allow_private:
        return True
    try:
        return _is_public(host)
    except ValueError:
        pass
    try:
        infos = socket.getaddrinfo(host, None)
    except (socket.gaierror, UnicodeError) as exc:
        logger.debug("[url_guard] cannot resolve {}: {}", host, exc)
        return False
    addresses = {info[4][0] for info in infos}
    return bool(addresses) and all(_is_public(address) for address in addresses)


def make_url_guard(allow_private: bool = False) -> UrlPredicate:
    def _guard(url: str) -> bool:
        return is_url_allowed(url, allow_private=allow_private)

    return _guard
