from __future__ import annotations

import warnings
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from flask import current_app


DEFAULT_HEADERS = {
    "User-Agent": "YerimiBot/1.0 (+https://yerimi.local)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

PROVIDER_MICROLINK = "microlink"
PROVIDER_DIRECT = "direct"
PROVIDER_NONE = "none"


class MetadataError(Exception):
    pass


@dataclass
class PageMetadata:
    title: str | None = None
    description: str | None = None


def _clean(value) -> str | None:
    if not isinstance(value, str):
        return None
    text = " ".join(value.split())
    return text or None


def _normalize_error(exc: Exception) -> str:
    message = str(exc).strip()
    if message:
        return message
    return exc.__class__.__name__


def fetch_html(
    url: str,
    timeout: float,
    max_bytes: int,
    transport: httpx.BaseTransport | None = None,
) -> str:
    with httpx.Client(
        follow_redirects=True,
        timeout=timeout,
        headers=DEFAULT_HEADERS,
        transport=transport,
    ) as client:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            chunks = []
            total = 0
            for chunk in response.iter_bytes():
                total += len(chunk)
                if total > max_bytes:
                    break
                chunks.append(chunk)
            encoding = response.encoding or "utf-8"
            return b"".join(chunks).decode(encoding, errors="ignore")


def _meta_content(soup: BeautifulSoup, **attrs) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    return _clean(tag.get("content"))


def extract_metadata_from_html(html: str) -> PageMetadata:
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(html, "lxml")

    title = _meta_content(soup, property="og:title")
    if not title and soup.title and soup.title.string:
        title = _clean(soup.title.string)

    description = _meta_content(soup, property="og:description") or _meta_content(
        soup, name="description"
    )
    return PageMetadata(title=title, description=description)


def fetch_microlink(
    url: str,
    endpoint: str,
    timeout: float,
    transport: httpx.BaseTransport | None = None,
) -> PageMetadata:
    with httpx.Client(timeout=timeout, headers=DEFAULT_HEADERS, transport=transport) as client:
        response = client.get(endpoint, params={"url": url})
    payload = response.json()
    if not isinstance(payload, dict):
        raise MetadataError("unexpected metadata response")
    if payload.get("status") != "success":
        raise MetadataError(payload.get("message") or "metadata lookup failed")
    data = payload.get("data") or {}
    if not isinstance(data, dict):
        raise MetadataError("unexpected metadata response")
    return PageMetadata(
        title=_clean(data.get("title")),
        description=_clean(data.get("description")),
    )


def fetch_metadata(
    url: str,
    provider: str = PROVIDER_MICROLINK,
    endpoint: str = "https://api.microlink.io",
    timeout: float = 10.0,
    max_bytes: int = 2500000,
    transport: httpx.BaseTransport | None = None,
) -> PageMetadata:
    if not url:
        raise MetadataError("url is required")
    try:
        if provider == PROVIDER_MICROLINK:
            return fetch_microlink(url, endpoint, timeout, transport=transport)
        if provider == PROVIDER_DIRECT:
            html = fetch_html(url, timeout=timeout, max_bytes=max_bytes, transport=transport)
            return extract_metadata_from_html(html)
    except (httpx.HTTPError, ValueError) as exc:
        raise MetadataError(_normalize_error(exc)) from exc
    raise MetadataError(f"metadata provider {provider!r} is disabled")


def lookup_metadata(url: str) -> PageMetadata:
    config = current_app.config
    return fetch_metadata(
        url,
        provider=config["METADATA_PROVIDER"],
        endpoint=config["METADATA_ENDPOINT"],
        timeout=config["METADATA_FETCH_TIMEOUT"],
        max_bytes=config["METADATA_MAX_BYTES"],
    )
