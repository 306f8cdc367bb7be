"""
Candidate page discovery, filtering and prioritization.
"""

import re
from typing import Callable, Optional
from urllib.parse import urldefrag, urlparse

from bs4 import BeautifulSoup

from .fetcher import origin_of, same_origin
from .oracle import OracleClient, OracleParams
from .prompts import build_rank_prompt

SITEMAP_PATHS = ["/sitemap.xml", "/sitemap_index.xml", "/sitemap-index.xml", "/sitemap1.xml"]
MAX_SUB_SITEMAPS = 5
RANK_THRESHOLD = 3  # Lists this short keep their natural order

_SKIP_EXTENSIONS = re.compile(
    r"\.(pdf|jpe?g|png|gif|webp|docx?|xml|txt|css|js|json|svg|ico|zip|mp3|mp4)$", re.I
)
_SKIP_PATHS = re.compile(
    r"(impressum|datenschutz|privacy|legal|agb|terms|cookie|disclaimer|haftung)", re.I
)


def parse_sitemap(xml: str) -> tuple[list[str], list[str]]:
    """Return (page_urls, sub_sitemap_urls) from sitemap XML."""
    soup = BeautifulSoup(xml, "html.parser")
    pages = [loc.get_text(strip=True) for url in soup.find_all("url")
             for loc in url.find_all("loc")]
    subs = [loc.get_text(strip=True) for sm in soup.find_all("sitemap")
            for loc in sm.find_all("loc")]
    return pages, subs


def discover_sitemap_urls(base_url: str, fetch_text: Callable[[str], Optional[str]]) -> list[str]:
    """
    Try the well-known sitemap locations.

    Sitemap indexes are expanded up to MAX_SUB_SITEMAPS. Returns []
    when no sitemap is found.
    """
    origin = origin_of(base_url)
    for path in SITEMAP_PATHS:
        xml = fetch_text(origin + path)
        if not xml or "<loc" not in xml:
            continue

        pages, subs = parse_sitemap(xml)
        for sub in subs[:MAX_SUB_SITEMAPS]:
            sub_xml = fetch_text(sub)
            if sub_xml:
                pages.extend(parse_sitemap(sub_xml)[0])

        pages = [p for p in pages if same_origin(p, base_url)]
        if pages:
            print(f"[CRAWL] Sitemap {path}: {len(pages)} URLs")
            return pages
    return []


def is_candidate(url: str) -> bool:
    path = urlparse(url).path
    return not _SKIP_EXTENSIONS.search(path) and not _SKIP_PATHS.search(path)


def filter_links(urls: list[str], exclude: Optional[str] = None) -> list[str]:
    """Drop non-page resources and boilerplate, strip fragments, dedupe in order."""
    seen = set()
    if exclude:
        seen.add(urldefrag(exclude)[0].rstrip("/"))
    kept = []
    for url in urls:
        clean = urldefrag(url.strip())[0]
        key = clean.rstrip("/")
        if not clean or key in seen or not is_candidate(clean):
            continue
        seen.add(key)
        kept.append(clean)
    return kept


async def prioritize(urls: list[str], base_url: str, oracle: OracleClient,
                     timeout: float = 30.0) -> list[str]:
    """
    Rank candidates with one oracle call.

    Unknown URLs in the ranking are ignored, unranked ones are appended,
    and any failure keeps the natural order.
    """
    if len(urls) <= RANK_THRESHOLD:
        return list(urls)

    params = OracleParams(temperature=0.0, max_tokens=2000, num_ctx=4096, top_p=0.1, timeout=timeout)
    parsed = await oracle.ask_json(build_rank_prompt(base_url, urls), params, expect="array")
    if not parsed.ok or not isinstance(parsed.data, list):
        print(f"[CRAWL] Ranking failed, keeping order: {parsed.error}")
        return list(urls)

    known = set(urls)
    scored = []
    for item in parsed.data:
        if not isinstance(item, dict) or item.get("url") not in known:
            continue
        try:
            score = float(item.get("score", 0))
        except (TypeError, ValueError):
            score = 0.0
        scored.append((item["url"], score))
    scored.sort(key=lambda pair: -pair[1])

    ranked = []
    for url, _ in scored:
        if url not in ranked:
            ranked.append(url)
    ranked.extend(url for url in urls if url not in ranked)
    print(f"[CRAWL] Prioritized {len(urls)} URLs, top: {ranked[0]}")
    return ranked
