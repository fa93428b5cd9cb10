"""Page extraction.

Downloads a single page and reduces it to a bounded, ordered summary:
title, meta description, headings (h1 to h3), long paragraphs and links.
Headings, paragraphs and links share one item cap.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from loguru import logger

from page_composer.config import (
    DEFAULT_MAX_ITEMS,
    EXTRACT_TIMEOUT,
    MAX_BODY_BYTES,
    USER_AGENT,
)
from page_composer.errors import FetchFailed, InvalidTarget, ParseFailed

MIN_PARAGRAPH_CHARS = 40
HEADING_LEVELS = (1, 2, 3)
_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True)
class Link:
    text: str
    href: str


@dataclass(frozen=True)
class ExtractedDocument:
    source_url: str
    title: str = ""
    description: str = ""
    headings: Tuple[Heading, ...] = ()
    paragraphs: Tuple[str, ...] = ()
    links: Tuple[Link, ...] = ()
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def is_absolute_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def collect_headings(soup: BeautifulSoup, limit: int) -> List[Heading]:
    """Headings grouped by level, h1 block first.

    The cap applies to the combined sequence, so a page with many h1
    elements can leave no room for h2 or h3.
    """
    headings: List[Heading] = []
    for level in HEADING_LEVELS:
        for element in soup.find_all(f"h{level}"):
            text = element.get_text().strip()
            if text:
                headings.append(Heading(level=level, text=text))
    return headings[:limit]


def collect_paragraphs(soup: BeautifulSoup, limit: int) -> List[str]:
    paragraphs: List[str] = []
    for element in soup.find_all("p"):
        text = element.get_text().strip()
        # short fragments are usually navigation or boilerplate
        if len(text) < MIN_PARAGRAPH_CHARS:
            continue
        paragraphs.append(text)
    return paragraphs[:limit]


def collect_links(soup: BeautifulSoup, base_url: str, limit: int) -> List[Link]:
    seen = set()
    links: List[Link] = []

    for anchor in soup.find_all("a", href=True):
        href = (anchor.get("href") or "").strip()
        if not href:
            continue

        try:
            resolved = urljoin(base_url, href)
        except ValueError:
            resolved = href

        if resolved in seen:
            continue
        seen.add(resolved)

        text = anchor.get_text().strip() or resolved
        links.append(Link(text=text, href=resolved))

    links = links[:limit]
    links.sort(key=lambda link: link.text)
    return links


def parse_document(
    body: bytes | str, source_url: str, max_items: int = DEFAULT_MAX_ITEMS
) -> ExtractedDocument:
    """Build an ``ExtractedDocument`` from an already downloaded body."""
    try:
        soup = BeautifulSoup(body, "html.parser")
    except Exception as exc:
        raise ParseFailed(f"parse document: {exc}") from exc

    title_tag = soup.find("title")
    title = title_tag.get_text().strip() if title_tag is not None else ""

    description = ""
    meta = soup.find("meta", attrs={"name": "description"})
    if meta is not None and meta.get("content") is not None:
        description = str(meta.get("content")).strip()

    return ExtractedDocument(
        source_url=source_url,
        title=title,
        description=description,
        headings=tuple(collect_headings(soup, max_items)),
        paragraphs=tuple(collect_paragraphs(soup, max_items)),
        links=tuple(collect_links(soup, source_url, max_items)),
        fetched_at=datetime.now(timezone.utc),
    )


class Extractor:
    """Fetches a URL and extracts structured content from it."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = EXTRACT_TIMEOUT,
        max_items: int = DEFAULT_MAX_ITEMS,
        max_body_bytes: int = MAX_BODY_BYTES,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout if timeout > 0 else EXTRACT_TIMEOUT
        self.max_items = max_items if max_items > 0 else DEFAULT_MAX_ITEMS
        self.max_body_bytes = max_body_bytes

    def fetch(self, target: str) -> ExtractedDocument:
        target = (target or "").strip()
        if not target:
            raise InvalidTarget("target URL is empty")
        if not is_absolute_url(target):
            raise InvalidTarget(f"invalid URL: {target}")

        logger.debug("Fetching {}", target)
        try:
            response = self.session.get(
                target,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
                stream=True,
            )
        except requests.exceptions.RequestException as exc:
            raise FetchFailed(reason=str(exc)) from exc

        try:
            if response.status_code >= 400:
                raise FetchFailed(status=response.status_code)
            body = self._read_bounded(response)
        finally:
            response.close()

        document = parse_document(body, target, self.max_items)
        logger.info(
            "Extracted {} headings, {} paragraphs, {} links from {}",
            len(document.headings),
            len(document.paragraphs),
            len(document.links),
            target,
        )
        return document

    def _read_bounded(self, response: requests.Response) -> bytes:
        """Read at most ``max_body_bytes``; anything past the cap is dropped."""
        buf = bytearray()
        try:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                if not chunk:
                    continue
                remaining = self.max_body_bytes - len(buf)
                buf.extend(chunk[:remaining])
                if len(buf) >= self.max_body_bytes:
                    logger.debug("Body truncated at {} bytes", self.max_body_bytes)
                    break
        except requests.exceptions.RequestException as exc:
            raise FetchFailed(reason=f"read body: {exc}") from exc
        return bytes(buf)

    def close(self) -> None:
        self.session.close()
