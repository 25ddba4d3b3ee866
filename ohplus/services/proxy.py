import logging
import os
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

import httpx

from ohplus.core.errors import IntegrationError, InvalidInputError

logger = logging.getLogger("ohplus.proxy")

ALLOWED_HOSTS = frozenset({"firebasestorage.googleapis.com", "storage.googleapis.com"})
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass
class ProxiedFile:
    content: bytes
    content_type: str
    filename: str


def validate_url(url: str | None) -> str:
    if not url:
        raise InvalidInputError("Missing url parameter")
    decoded = unquote(url)
    parsed = urlparse(decoded)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise InvalidInputError("Invalid url")
    if parsed.hostname not in ALLOWED_HOSTS:
        raise InvalidInputError("Host not allowed")
    return decoded


def _check_hop(request: httpx.Request) -> None:
    if request.url.host not in ALLOWED_HOSTS:
        logger.warning("proxy redirect blocked host=%s", request.url.host)
        raise IntegrationError("Redirect to a host that is not allowed")


def _fetch(url: str, headers: dict, timeout: float) -> httpx.Response:
    try:
        with httpx.Client(
            timeout=timeout, follow_redirects=True, event_hooks={"request": [_check_hop]}
        ) as client:
            response = client.get(url, headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("proxy fetch failed url=%s: %s", url, exc)
        raise IntegrationError("Failed to fetch file") from exc
    if response.status_code >= 400:
        logger.warning("proxy upstream status=%s url=%s", response.status_code, url)
        raise IntegrationError(f"Upstream returned status {response.status_code}")
    return response


def fetch_image(url: str | None, timeout: float = 15.0) -> ProxiedFile:
    target = validate_url(url)
    response = _fetch(target, {"User-Agent": BROWSER_USER_AGENT}, timeout)
    return ProxiedFile(
        content=response.content,
        content_type=response.headers.get("content-type") or "image/jpeg",
        filename=os.path.basename(urlparse(target).path) or "image",
    )


def fetch_pdf(url: str | None, timeout: float = 30.0) -> ProxiedFile:
    target = validate_url(url)
    response = _fetch(target, {"Accept": "application/pdf,*/*"}, timeout)
    return ProxiedFile(
        content=response.content,
        content_type="application/pdf",
        filename=unquote(urlparse(target).path.rsplit("/", 1)[-1]) or "file.pdf",
    )
