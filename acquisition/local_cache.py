"""
Local snapshot cache strategy.

Reads pre-fetched page snapshots for an application from
{local_cache_dir}/{app_name}/ instead of touching the network.
Only used outside production.
"""
import json
import re
from pathlib import Path

from acquisition.base import (
    AcquisitionOutcome,
    AcquisitionRequest,
    AcquisitionSource,
    AcquisitionStrategy,
    Page,
)
from sitekb.config import settings
from sitekb.logging_config import get_logger

logger = get_logger(__name__)

_FRONT_MATTER = re.compile(r"\A\ufeff?---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)
_URL_KEY = re.compile(r"^\s*(?:url|source_url|sourceURL)\s*:\s*[\"']?([^\s\"']+)", re.MULTILINE)


class LocalCacheStrategy(AcquisitionStrategy):
    """
    Acquire pages from a local snapshot directory.

    Supports: .md, .markdown, .txt (one page per file) and .json
    ({"url": ..., "markdown": ...} objects, or lists of them).
    """

    SUPPORTED_EXTENSIONS = (".md", ".markdown", ".txt", ".json")

    def __init__(self, cache_dir: str | Path | None = None, production: bool | None = None):
        self.cache_dir = Path(cache_dir or settings.local_cache_dir)
        self.production = settings.is_production if production is None else production

    @property
    def source(self) -> AcquisitionSource:
        return AcquisitionSource.LOCAL_CACHE

    def is_enabled(self) -> bool:
        return not self.production

    def app_directory(self, app_name: str) -> Path:
        # Path(...).name keeps the lookup inside cache_dir
        return self.cache_dir / Path(app_name).name

    def acquire(self, request: AcquisitionRequest) -> AcquisitionOutcome:
        directory = self.app_directory(request.app_name)
        if not directory.is_dir():
            return AcquisitionOutcome.empty(self.source)

        pages: list[Page] = []
        for path in sorted(directory.iterdir()):
            if not path.is_file() or path.suffix.lower() not in self.SUPPORTED_EXTENSIONS:
                continue
            pages.extend(self._load(path))

        if not pages:
            logger.info(f"cache.empty dir={directory}")
            return AcquisitionOutcome.empty(self.source)

        logger.info(f"cache.hit dir={directory} pages={len(pages)}")
        return AcquisitionOutcome.success(self.source, pages)

    def _load(self, path: Path) -> list[Page]:
        """Load pages from one snapshot file; unreadable files are skipped."""
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error loading {path}: {e}")
            return []

        if path.suffix.lower() == ".json":
            return self._load_json(path, content)

        if not content.strip():
            return []
        return [Page(source_url=self._source_url(content, path), raw_content=content)]

    def _load_json(self, path: Path, content: str) -> list[Page]:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing {path}: {e}")
            return []

        records = data if isinstance(data, list) else [data]
        pages = []
        for record in records:
            if not isinstance(record, dict):
                continue
            markdown = record.get("markdown") or record.get("content")
            url = record.get("url") or record.get("sourceURL") or record.get("source_url")
            if isinstance(markdown, str) and markdown.strip():
                pages.append(Page(source_url=url or path.resolve().as_uri(), raw_content=markdown))
        return pages

    @staticmethod
    def _source_url(content: str, path: Path) -> str:
        """Source URL from front matter, else the file URI."""
        match = _FRONT_MATTER.match(content)
        if match:
            url = _URL_KEY.search(match.group(1))
            if url:
                return url.group(1)
        return path.resolve().as_uri()
