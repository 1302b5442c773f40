"""
Markdown content normalization.

Pure text transform applied to every acquired page before dedup and
chunking. Steps, in order:

1. Strip a leading byte-order mark and a leading --- front matter block
2. Remove HTML comments and <script>/<style> blocks
3. Right-trim every line, collapse 3+ newlines to 2
4. Replace markdown images with their alt text
5. Strip tracking query parameters (utm_*, ref, fbclid) from absolute link targets
6. Drop a line that repeats the line right before it
7. Drop boilerplate lines (copyright, cookie/privacy/terms notices)
8. Trim the whole document

Every step only removes text, so the steps are repeated until the output
stops changing; the result is a fixed point and normalize(normalize(t))
equals normalize(t).
"""
import re
from dataclasses import dataclass
from urllib.parse import unquote_plus, urlsplit, urlunsplit

from acquisition.base import Page
from ingest.dedup import content_hash

_BOM = "\ufeff"
_FRONT_MATTER = re.compile(r"\A---[ \t]*\n.*?\n---[ \t]*(?:\n|\Z)", re.DOTALL)
_HTML_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_SCRIPT_STYLE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.DOTALL | re.IGNORECASE)
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK = re.compile(r"(\[[^\]]*\]\()(https?://[^)\s]+)")

_TRACKING_EXACT = {"ref", "fbclid"}

# Only short lines are considered boilerplate
_BOILERPLATE_MAX_LENGTH = 200
_BOILERPLATE_PATTERNS = [
    re.compile(r"^\W*(?:©|\(c\)|copyright\b)", re.IGNORECASE),
    re.compile(r"\ball rights reserved\b", re.IGNORECASE),
    re.compile(
        r"^\W*(?:we use cookies|this (?:web)?site uses cookies|accept (?:all )?cookies"
        r"|cookie (?:policy|settings|preferences|notice|consent))\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"^\W*(?:privacy policy|privacy notice|terms of (?:use|service)"
        r"|terms (?:and|&) conditions)\W*$",
        re.IGNORECASE,
    ),
]


@dataclass
class NormalizedPage:
    source_url: str
    text: str
    content_hash: str


def _strip_preamble(text: str) -> str:
    if text.startswith(_BOM):
        text = text[len(_BOM):]
    return _FRONT_MATTER.sub("", text, count=1)


def _strip_markup(text: str) -> str:
    text = _HTML_COMMENT.sub("", text)
    return _SCRIPT_STYLE.sub("", text)


def _tidy_whitespace(text: str) -> str:
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    return _EXCESS_NEWLINES.sub("\n\n", text)


def _is_tracking_param(segment: str) -> bool:
    key = unquote_plus(segment.split("=", 1)[0]).strip().lower()
    return key.startswith("utm_") or key in _TRACKING_EXACT


def strip_tracking_params(url: str) -> str:
    """
    Remove tracking query parameters from an absolute URL.

    The remaining parameters keep their original order and encoding.
    URLs that cannot be parsed are returned unchanged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.query:
        return url

    segments = parts.query.split("&")
    kept = [segment for segment in segments if not _is_tracking_param(segment)]
    if len(kept) == len(segments):
        return url
    return urlunsplit(parts._replace(query="&".join(kept)))


def _clean_links(text: str) -> str:
    return _LINK.sub(lambda m: m.group(1) + strip_tracking_params(m.group(2)), text)


def _drop_repeated_lines(text: str) -> str:
    lines: list[str] = []
    for line in text.split("\n"):
        if lines and line == lines[-1]:
            continue
        lines.append(line)
    return "\n".join(lines)


def _is_boilerplate(line: str) -> bool:
    stripped = line.strip()
    if not stripped or len(stripped) > _BOILERPLATE_MAX_LENGTH:
        return False
    return any(pattern.search(stripped) for pattern in _BOILERPLATE_PATTERNS)


def _drop_boilerplate(text: str) -> str:
    return "\n".join(line for line in text.split("\n") if not _is_boilerplate(line))


def _normalize_once(text: str) -> str:
    text = _strip_preamble(text)
    text = _strip_markup(text)
    text = _tidy_whitespace(text)
    text = _IMAGE.sub(r"\1", text)
    text = _clean_links(text)
    text = _drop_repeated_lines(text)
    text = _drop_boilerplate(text)
    return text.strip()


def normalize_content(text: str) -> str:
    """
    Normalize page markdown.

    Deterministic: identical input always yields byte-identical output.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    while True:
        normalized = _normalize_once(text)
        if normalized == text:
            return normalized
        text = normalized


def normalize_page(page: Page) -> NormalizedPage:
    """Normalize an acquired page and compute its content hash."""
    text = normalize_content(page.raw_content)
    return NormalizedPage(
        source_url=page.source_url,
        text=text,
        content_hash=content_hash(text),
    )
