"""
Page fetcher - HTTP + HTML-to-text boundary.

Returns CandidatePage objects; failures are reported on the page
(success=False) rather than raised.
"""

import re
from typing import Optional
from urllib.parse import urljoin, urldefrag, urlparse

import requests
from bs4 import BeautifulSoup

from models import CandidatePage

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
    "Accept": "text/html,application/xhtml+xml,*/*",
}

MAX_TEXT_CHARS = 8000
CONTENT_SELECTORS = ["article", "main", ".content", ".post-content",
                     ".article-content", "#content", "body"]
STRIP_TAGS = ["script", "style", "nav", "footer", "header", "noscript"]

_EMAIL = re.compile(r"\b[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}\b")
_URL = re.compile(r"https?://[^\s<>\"')\]]+")
_OBFUSCATED = [
    (re.compile(r"\s*\[\s*at\s*\]\s*", re.I), "@"),
    (re.compile(r"\s*\(\s*at\s*\)\s*", re.I), "@"),
    (re.compile(r"\s*\[\s*dot\s*\]\s*", re.I), "."),
    (re.compile(r"\s*\(\s*dot\s*\)\s*", re.I), "."),
]
_BAD_EMAIL_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".css", ".js")


def same_origin(url: str, base: str) -> bool:
    a, b = urlparse(url), urlparse(base)
    return a.scheme in ("http", "https") and a.netloc.lower() == b.netloc.lower()


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def harvest_emails(text: str) -> list[str]:
    """Find email addresses, including "name [at] domain [dot] com" forms."""
    for pattern, replacement in _OBFUSCATED:
        text = pattern.sub(replacement, text)
    found = []
    for email in _EMAIL.findall(text):
        email = email.strip(".").lower()
        if email.endswith(_BAD_EMAIL_SUFFIXES) or email in found:
            continue
        found.append(email)
    return found


def harvest_urls(text: str) -> list[str]:
    found = []
    for url in _URL.findall(text):
        url = url.rstrip(".,;")
        if url not in found:
            found.append(url)
    return found


def parse_html(url: str, html: str, max_chars: int = MAX_TEXT_CHARS) -> CandidatePage:
    """Turn raw HTML into a CandidatePage (no network)."""
    soup = BeautifulSoup(html, "html.parser")

    links = []
    mailto = []
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if href.lower().startswith("mailto:"):
            mailto.append(href[7:].split("?")[0])
            continue
        absolute, _ = urldefrag(urljoin(url, href))
        if same_origin(absolute, url) and absolute not in links:
            links.append(absolute)

    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
    elif soup.h1:
        title = soup.h1.get_text(strip=True)

    for tag in soup(STRIP_TAGS):
        tag.decompose()

    node = None
    for selector in CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is not None:
            break
    raw_text = (node or soup).get_text(" ", strip=True)
    text = re.sub(r"\s+", " ", raw_text).strip()

    emails = harvest_emails(" ".join(mailto) + " " + text)
    return CandidatePage(
        url=url,
        title=title,
        text=text[:max_chars],
        links=links,
        emails=emails,
        urls=harvest_urls(text),
    )


class PageFetcher:
    """requests-based fetcher with a per-request timeout."""

    def __init__(self, timeout: float = 10.0, max_chars: int = MAX_TEXT_CHARS):
        self.timeout = timeout
        self.max_chars = max_chars
        self._session = requests.Session()
        self._session.headers.update(HEADERS)

    def fetch(self, url: str) -> CandidatePage:
        try:
            r = self._session.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            print(f"[FETCH] {url}: {e}")
            return CandidatePage(url=url, success=False, error=str(e))

        content_type = r.headers.get("Content-Type", "")
        if content_type and "html" not in content_type.lower():
            return CandidatePage(url=url, success=False, error=f"Not HTML: {content_type}")

        page = parse_html(r.url or url, r.text, self.max_chars)
        page.url = url
        return page

    def fetch_text(self, url: str, timeout: Optional[float] = None) -> Optional[str]:
        """Raw body of a URL (sitemaps), or None on any failure."""
        try:
            r = self._session.get(url, timeout=timeout or self.timeout)
            if r.status_code != 200:
                return None
            return r.text
        except requests.RequestException:
            return None
