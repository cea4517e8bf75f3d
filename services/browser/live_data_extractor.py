import re
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlparse
from bs4 import BeautifulSoup
from structlog import get_logger  # type: ignore

from models.page_model import AmountMatch, LiveData
from utils.text_utils import clean_text

logger = get_logger(__name__)

_AMOUNT_RE = re.compile(r"\$([0-9,.]+)\s*(billion|million|B|M|K)?")
_PERCENT_RE = re.compile(r"([0-9,.]+)\s*%")
_FOLLOWERS_RE = re.compile(r"([0-9,.]+[KMB]?)\s*[Ff]ollowers")

MAX_FIGURES = 10

# (host suffix, extractor type), first match wins
EXTRACTOR_HOSTS = [
    ("instagram.com", "instagram"),
    ("statista.com", "statista"),
]


def extract_amounts(text: str) -> List[AmountMatch]:
    return [
        AmountMatch(value=m.group(1), unit=m.group(2), raw=m.group(0))
        for m in _AMOUNT_RE.finditer(text)
    ][:MAX_FIGURES]


def extract_percentages(text: str) -> List[str]:
    return [m.group(0) for m in _PERCENT_RE.finditer(text)][:MAX_FIGURES]


class LiveDataExtractor:
    """Pulls headline figures from a fetched page for data-refresh tools."""

    def extractor_type(self, url: str) -> str:
        host = (urlparse(url).hostname or "").lower()
        for suffix, kind in EXTRACTOR_HOSTS:
            if host == suffix or host.endswith("." + suffix):
                return kind
        return "generic"

    def extract(self, url: str, html: str) -> LiveData:
        kind = self.extractor_type(url)
        timestamp = datetime.now(timezone.utc).isoformat()
        soup = BeautifulSoup(html, "html.parser")
        text = soup.get_text(" ")

        if kind == "instagram":
            followers = _FOLLOWERS_RE.search(text)
            return LiveData(
                url=url,
                extractor_type=kind,
                success=True,
                followers=followers.group(1) if followers else None,
                username=self._username(url),
                timestamp=timestamp,
            )

        amounts = extract_amounts(text)
        percentages = extract_percentages(text)

        if kind == "statista":
            return LiveData(
                url=url,
                extractor_type=kind,
                success=True,
                title=self._title(soup),
                amounts=amounts,
                percentages=percentages,
                timestamp=timestamp,
            )

        return LiveData(
            url=url,
            extractor_type=kind,
            success=True,
            title=self._title(soup),
            description=self._description(soup),
            amounts=amounts or None,
            percentages=percentages or None,
            timestamp=timestamp,
        )

    def failed(self, url: str, error: str) -> LiveData:
        return LiveData(
            url=url,
            extractor_type=self.extractor_type(url),
            success=False,
            error=error,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    @staticmethod
    def _username(url: str) -> Optional[str]:
        parts = [p for p in urlparse(url).path.split("/") if p]
        return parts[-1] if parts else None

    @staticmethod
    def _title(soup: BeautifulSoup) -> Optional[str]:
        h1 = soup.find("h1")
        if h1 and (text := clean_text(h1.get_text(" "))):
            return text
        if soup.title and (text := clean_text(soup.title.get_text())):
            return text
        return None

    @staticmethod
    def _description(soup: BeautifulSoup) -> Optional[str]:
        tag = soup.find("meta", attrs={"name": "description"})
        if tag and (content := (tag.get("content") or "").strip()):
            return content
        return None
