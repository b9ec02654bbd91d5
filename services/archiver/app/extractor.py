#services/archiver/app/extractor.py
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
from bs4 import BeautifulSoup
from readability import Document

from shared.app_logging.logger import get_logger
from shared.config.settings import get_settings

logger = get_logger("archiver.extractor")

EXCERPT_LENGTH = 200


class ExtractionFailed(Exception):
    """The page could not be fetched or no readable content was found."""


@dataclass
class ExtractedArticle:
    title: str
    excerpt: str
    content: str


class Scraper(Protocol):
    def scrape(self, url: str, timeout: float) -> ExtractedArticle:
        ...


def _meta_description(soup: BeautifulSoup) -> Optional[str]:
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        tag = soup.find("meta", attrs=attrs)
        if tag and tag.get("content", "").strip():
            return tag["content"].strip()
    return None


def _make_excerpt(text: str) -> str:
    text = " ".join(text.split())
    if len(text) <= EXCERPT_LENGTH:
        return text
    cut = text[:EXCERPT_LENGTH].rsplit(" ", 1)[0]
    return f"{cut}..."


def extract(raw_html: str, base_url: str) -> ExtractedArticle:
    """Readable title, excerpt and cleaned HTML of a page."""
    if not raw_html or not raw_html.strip():
        raise ExtractionFailed(f"empty document from {base_url}")

    try:
        doc = Document(raw_html, url=base_url)
        content = doc.summary(html_partial=True)
        title = doc.short_title() or doc.title()
    except Exception as e:
        raise ExtractionFailed(f"failed to parse {base_url}: {e}") from e

    text = BeautifulSoup(content, "html.parser").get_text(separator=" ", strip=True)
    if not text:
        raise ExtractionFailed(f"no readable content found at {base_url}")

    excerpt = _meta_description(BeautifulSoup(raw_html, "html.parser")) or _make_excerpt(text)
    if title == "[no-title]":
        title = ""
    return ExtractedArticle(title=title.strip(), excerpt=excerpt, content=content)


class ReadabilityScraper:
    """Downloads a page with httpx and runs it through readability."""

    def __init__(self, user_agent: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.user_agent = user_agent or get_settings().worker.user_agent
        self.transport = transport

    def scrape(self, url: str, timeout: float) -> ExtractedArticle:
        """Fetch and extract ``url``; ``timeout`` bounds the whole download, not each read."""
        deadline = time.monotonic() + timeout
        try:
            with httpx.Client(timeout=timeout, follow_redirects=True, transport=self.transport) as client:
                with client.stream("GET", url, headers={"User-Agent": self.user_agent}) as response:
                    response.raise_for_status()
                    body = bytearray()
                    for chunk in response.iter_bytes():
                        if time.monotonic() > deadline:
                            raise ExtractionFailed(f"timed out after {timeout:g}s fetching {url}")
                        body.extend(chunk)
        except httpx.HTTPStatusError as e:
            raise ExtractionFailed(f"{e.response.status_code} {e.response.reason_phrase} for {url}") from e
        except httpx.TimeoutException as e:
            raise ExtractionFailed(f"timed out after {timeout:g}s fetching {url}") from e
        except httpx.HTTPError as e:
            raise ExtractionFailed(f"failed to fetch {url}: {e}") from e

        logger.debug(f"Fetched {len(body)} bytes from {response.url}")
        text = bytes(body).decode(response.encoding or "utf-8", errors="replace")
        return extract(text, str(response.url))
