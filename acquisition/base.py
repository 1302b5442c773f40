"""
Base types for page acquisition strategies.

Every strategy implements the AcquisitionStrategy interface so the
strategist can try them in a fixed order and tell "try the next one"
(EMPTY / ERROR) apart from a usable page set (SUCCESS).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class AcquisitionSource(str, Enum):
    """Supported content sources, in fallback order."""
    LOCAL_CACHE = "local_cache"
    LLM_EXTRACTION = "llm_extraction"
    RECURSIVE_CRAWL = "recursive_crawl"


class AcquisitionStatus(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


@dataclass
class Page:
    """Raw page content as produced by an acquisition strategy."""
    source_url: str
    raw_content: str


@dataclass
class AcquisitionRequest:
    url: str
    app_name: str


@dataclass
class AcquisitionOutcome:
    """Result of one acquisition attempt (or of the whole strategy chain)."""
    status: AcquisitionStatus
    pages: list[Page] = field(default_factory=list)
    source: AcquisitionSource | None = None
    error: str | None = None

    @classmethod
    def success(cls, source: AcquisitionSource, pages: list[Page]) -> "AcquisitionOutcome":
        return cls(status=AcquisitionStatus.SUCCESS, pages=pages, source=source)

    @classmethod
    def empty(cls, source: AcquisitionSource | None = None) -> "AcquisitionOutcome":
        return cls(status=AcquisitionStatus.EMPTY, source=source)

    @classmethod
    def failure(cls, source: AcquisitionSource | None, error: str) -> "AcquisitionOutcome":
        return cls(status=AcquisitionStatus.ERROR, source=source, error=error)

    @property
    def ok(self) -> bool:
        return self.status == AcquisitionStatus.SUCCESS


class AcquisitionStrategy(ABC):
    """
    Abstract base class for all acquisition strategies.

    Implement this interface to add a new way of obtaining pages for a site.
    """

    @property
    @abstractmethod
    def source(self) -> AcquisitionSource:
        """Return the source this strategy acquires from."""
        pass

    @property
    def name(self) -> str:
        """Human-readable name for this strategy."""
        return self.source.value

    def is_enabled(self) -> bool:
        """Whether the strategy should be attempted at all."""
        return True

    @abstractmethod
    def acquire(self, request: AcquisitionRequest) -> AcquisitionOutcome:
        """
        Acquire pages for one ingestion request.

        Returns:
            SUCCESS with a non-empty page list, EMPTY when nothing usable was
            found, or ERROR with a message. May also raise; the strategist
            treats exceptions as ERROR outcomes.
        """
        pass
