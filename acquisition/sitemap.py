"""
Sitemap discovery.

Resolves a seed URL to a bounded, deduplicated list of same-site page URLs:

1. Derive the site root (scheme + host, path "/")
2. Seed candidate sitemaps: the well-known paths plus every "Sitemap:"
   directive in robots.txt
3. Breadth-first traversal with a visited set and a hard cap on sitemap
   documents fetched (bounds cost, breaks cycles)
4. Documents whose <loc> entries are mostly .xml are sitemap indexes;
   otherwise their non-.xml entries are pages
5. Pages are deduplicated in first-seen order and truncated

Every fetch is fail-soft: a missing or broken document is skipped.
"""
import html
import re
from collections import deque
from urllib.parse import urljoin, urlsplit

import httpx

from sitekb.config import settings
from sitekb.logging_config import get_logger

logger = get_logger(__name__)

# Hard cap on sitemap documents fetched per discovery
MAX_SITEMAP_DOCUMENTS = 20

SITEMAP_PATHS = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
)

USER_AGENT = "sitekb-ingest/1.0 (+sitemap discovery)"

_LOC_PATTERN = re.compile(
    r"<loc[^>]*>\s*(?:<!\[CDATA\[)?\s*(.*?)\s*(?:\]\]>)?\s*</loc>",
    re.IGNORECASE | re.DOTALL,
)
_ROBOTS_SITEMAP_PATTERN = re.compile(r"^\s*sitemap\s*:\s*(\S+)", re.IGNORECASE)


def site_root(url: str) -> str:
    """
    Return scheme://host/ for a URL.

    Raises:
        ValueError: The URL is not absolute.
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Not an absolute URL: {url!r}")
    return f"{parts.scheme}://{parts.netloc}/"


def _host(url: str) -> str:
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def _is_xml(url: str) -> bool:
    try:
        return urlsplit(url).path.lower().endswith(".xml")
    except ValueError:
        return False


def _resolve(base_url: str, loc: str) -> str | None:
    """Absolute URL for loc, or None when it cannot be parsed."""
    try:
        url = urljoin(base_url, loc)
    except ValueError as e:
        logger.debug(f"sitemap.bad_location loc={loc!r} err={e}")
        return None
    return url


def _is_text_response(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "").lower()
    if not content_type:
        return True
    return content_type.startswith("text/") or "xml" in content_type


def parse_locations(document: str, base_url: str) -> list[str]:
    """Extract <loc> entries from a sitemap document as absolute URLs."""
    locations = []
    for raw in _LOC_PATTERN.findall(document):
        loc = html.unescape(raw.strip())
        url = _resolve(base_url, loc) if loc else None
        if url:
            locations.append(url)
    return locations


def parse_robots_sitemaps(robots_txt: str, base_url: str) -> list[str]:
    """Extract Sitemap: directives (case-insensitive) from robots.txt."""
    sitemaps = []
    for line in robots_txt.splitlines():
        match = _ROBOTS_SITEMAP_PATTERN.match(line)
        url = _resolve(base_url, match.group(1)) if match else None
        if url:
            sitemaps.append(url)
    return sitemaps


class SitemapDiscoverer:
    """Discover page URLs for a site from its sitemaps."""

    def __init__(
        self,
        max_urls: int | None = None,
        timeout: float | None = None,
        max_documents: int = MAX_SITEMAP_DOCUMENTS,
        client: httpx.Client | None = None,
    ):
        self.max_urls = max_urls or settings.sitemap_max_urls
        self.timeout = timeout or settings.sitemap_fetch_timeout_seconds
        self.max_documents = max_documents
        self._client = client

    def discover(self, seed_url: str) -> list[str] | None:
        """
        Discover page URLs for the site of seed_url.

        Returns:
            Ordered, deduplicated page URLs (at most max_urls), or None when
            no page URL was found. None is a normal outcome: the caller should
            fall back to single-page or recursive-crawl acquisition.
        """
        try:
            root = site_root(seed_url)
        except ValueError as e:
            logger.warning(f"sitemap.skip reason={e}")
            return None

        if self._client is not None:
            return self._discover(self._client, root)

        with httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            return self._discover(client, root)

    def _discover(self, client: httpx.Client, root: str) -> list[str] | None:
        candidates = [urljoin(root, path) for path in SITEMAP_PATHS]
        robots = self._fetch(client, urljoin(root, "/robots.txt"))
        if robots is not None:
            candidates.extend(parse_robots_sitemaps(robots, root))

        queue = deque(candidates)
        visited: set[str] = set()
        pages: list[str] = []
        seen_pages: set[str] = set()
        site_host = _host(root)

        while queue and len(visited) < self.max_documents and len(pages) < self.max_urls:
            sitemap_url = queue.popleft()
            if sitemap_url in visited:
                continue
            visited.add(sitemap_url)

            document = self._fetch(client, sitemap_url)
            if document is None:
                continue

            locations = parse_locations(document, sitemap_url)
            if not locations:
                continue

            xml_locations = [loc for loc in locations if _is_xml(loc)]
            if len(xml_locations) * 2 >= len(locations):
                logger.debug(f"sitemap.index url={sitemap_url} children={len(xml_locations)}")
                queue.extend(
                    loc for loc in xml_locations
                    if loc not in visited and _host(loc) == site_host
                )
                continue

            for loc in locations:
                if _is_xml(loc) or loc in seen_pages:
                    continue
                if _host(loc) != site_host:
                    continue
                seen_pages.add(loc)
                pages.append(loc)

        if len(visited) >= self.max_documents and queue:
            logger.info(f"sitemap.cap_reached documents={len(visited)} pending={len(queue)}")

        if not pages:
            logger.info(f"sitemap.none root={root} documents_visited={len(visited)}")
            return None

        logger.info(f"sitemap.found root={root} urls={min(len(pages), self.max_urls)}")
        return pages[: self.max_urls]

    def _fetch(self, client: httpx.Client, url: str) -> str | None:
        """GET a text/xml document; None on any failure."""
        try:
            response = client.get(url, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.debug(f"sitemap.fetch_failed url={url} err={type(e).__name__}: {e}")
            return None

        if not response.is_success or not _is_text_response(response):
            logger.debug(
                f"sitemap.absent url={url} status={response.status_code} "
                f"content_type={response.headers.get('content-type', '')}"
            )
            return None
        return response.text
