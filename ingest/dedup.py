"""
Run-scoped page deduplication.

Suppresses exact duplicate pages (equal normalized text) within one
ingestion run. Duplicates across runs are handled at indexing time by
deterministic document ids.
"""
import hashlib


def content_hash(text: str) -> str:
    """SHA-256 hex digest of normalized page text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class DedupTracker:
    """Set of content hashes seen during one ingestion run. Not shared across runs."""

    def __init__(self):
        self._seen: set[str] = set()
        self.skipped = 0

    def __contains__(self, digest: str) -> bool:
        return digest in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def check_and_add(self, digest: str) -> bool:
        """
        Record a content hash.

        Returns:
            True if the hash is new (process the page), False if the page
            is a duplicate and must be skipped.
        """
        if digest in self._seen:
            self.skipped += 1
            return False
        self._seen.add(digest)
        return True
