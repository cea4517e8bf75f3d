from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class PageClassification(str, Enum):
    """Coarse outcome of fetching a page."""
    PENDING = "pending"
    OK = "ok"
    DEAD = "dead"
    REDIRECT = "redirect"
    PAYWALL = "paywall"
    LOGIN = "login"


class ErrorKind(str, Enum):
    """Why a navigation failed, derived from the engine's error message."""
    DNS_FAILED = "dns_failed"
    CONNECTION_REFUSED = "connection_refused"
    TIMEOUT = "timeout"
    SSL_ERROR = "ssl_error"
    NETWORK_ERROR = "network_error"


class NavigationOutcome(BaseModel):
    """Result of driving one tab to a URL.

    status_guess is sniffed from the page title; http_status is only set
    when the engine reports a real protocol status.
    """
    model_config = ConfigDict(frozen=True)

    status_guess: int = 0
    http_status: Optional[int] = None
    title: Optional[str] = None
    final_url: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    elapsed_ms: int = 0
    attempts: int = 1

    @property
    def failed(self) -> bool:
        return self.error_kind is not None or self.status_guess == 0

    @property
    def effective_status(self) -> int:
        if self.failed:
            return 0
        if self.http_status is not None:
            return self.http_status
        return self.status_guess


class Section(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1, le=6)
    heading: str
    content: str


class Link(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    url: str


class CodeBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    lang: Optional[str] = None
    source: str


class ExtractedPage(BaseModel):
    """Structured record for one fetched page (HTML or PDF)."""
    model_config = ConfigDict(frozen=True)

    url: str
    classification: PageClassification
    title: Optional[str] = None
    site: Optional[str] = None
    author: Optional[str] = None
    date: Optional[str] = None
    doi: Optional[str] = None
    sections: List[Section] = Field(default_factory=list)
    links: List[Link] = Field(default_factory=list)
    code: List[CodeBlock] = Field(default_factory=list)
    alerts: List[str] = Field(default_factory=list)
    char_count: int = 0

    @classmethod
    def dead(
        cls, url: str, message: str, title: Optional[str] = None
    ) -> "ExtractedPage":
        return cls(
            url=url,
            classification=PageClassification.DEAD,
            title=title,
            alerts=[message],
        )

    def to_compact_dict(self) -> dict:
        """Dump without None values and empty lists."""
        data = self.model_dump(mode="json", exclude_none=True)
        return {
            key: value
            for key, value in data.items()
            if not (isinstance(value, list) and not value)
        }


class VerificationResult(BaseModel):
    """Link-check result: classification without content extraction."""
    model_config = ConfigDict(frozen=True)

    url: str
    classification: PageClassification
    outcome: Optional[NavigationOutcome] = None
    note: Optional[str] = None


class AmountMatch(BaseModel):
    value: str
    unit: Optional[str] = None
    raw: str


class LiveData(BaseModel):
    """Figures pulled from a page for data-refresh tools."""
    url: str
    extractor_type: str
    success: bool
    title: Optional[str] = None
    description: Optional[str] = None
    amounts: Optional[List[AmountMatch]] = None
    percentages: Optional[List[str]] = None
    followers: Optional[str] = None
    username: Optional[str] = None
    error: Optional[str] = None
    timestamp: str
