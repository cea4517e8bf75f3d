from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from bs4 import BeautifulSoup, Comment, NavigableString
from structlog import get_logger  # type: ignore

from config.scraper_config import ScraperConfig
from models.page_model import NavigationOutcome, PageClassification
from utils.url_utils import is_cross_host

logger = get_logger(__name__)

Verdict = Tuple[PageClassification, Optional[str]]


@dataclass(frozen=True)
class DetectionRule:
    """Phrases (matched in visible text) and CSS selectors that gate a page."""
    classification: PageClassification
    phrases: Tuple[str, ...]
    selectors: Tuple[str, ...]
    note: str


PAYWALL_RULE = DetectionRule(
    classification=PageClassification.PAYWALL,
    phrases=tuple(ScraperConfig.PAYWALL_PHRASES),
    selectors=tuple(ScraperConfig.PAYWALL_SELECTORS),
    note="Paywall detected",
)

LOGIN_RULE = DetectionRule(
    classification=PageClassification.LOGIN,
    phrases=tuple(ScraperConfig.LOGIN_PHRASES),
    selectors=tuple(ScraperConfig.LOGIN_SELECTORS),
    note="Login required",
)

DEFAULT_RULES: Tuple[DetectionRule, ...] = (PAYWALL_RULE, LOGIN_RULE)


class ContentDetector:
    def __init__(
        self,
        rules: Sequence[DetectionRule] = DEFAULT_RULES,
        non_visible_tags: Optional[List[str]] = None,
    ):
        self.rules = tuple(rules)
        self.non_visible_tags = non_visible_tags or ScraperConfig.NON_VISIBLE_TAGS

    def classify(
        self,
        requested_url: str,
        outcome: NavigationOutcome,
        html: Optional[str] = None,
    ) -> Verdict:
        """Dead > Redirect > gated content (rule order) > Ok."""
        if verdict := self.classify_navigation(requested_url, outcome):
            return verdict
        if html is None:
            return PageClassification.OK, None
        return self.classify_content(html)

    def classify_navigation(
        self, requested_url: str, outcome: NavigationOutcome
    ) -> Optional[Verdict]:
        # Layer 1: navigation failure
        if outcome.failed:
            return PageClassification.DEAD, outcome.error or "Navigation failed"

        # Layer 2: status; a soft 404 (real 200, "Not Found" title) is still dead
        status = outcome.effective_status
        for candidate in (status, outcome.status_guess):
            if candidate == 404 or 500 <= candidate < 600:
                return PageClassification.DEAD, f"HTTP {candidate}"

        # Layer 3: cross-host redirect
        if 200 <= status < 400 and is_cross_host(requested_url, outcome.final_url):
            logger.info(
                "[ContentDetector] Cross-host redirect",
                url=requested_url,
                final_url=outcome.final_url,
            )
            return PageClassification.REDIRECT, outcome.final_url

        return None

    def classify_content(self, html: str) -> Verdict:
        soup = BeautifulSoup(html, "html.parser")
        visible_text = self.visible_text(soup).lower()

        for rule in self.rules:
            if self._matches(rule, soup, visible_text):
                logger.info(
                    "[ContentDetector] Gated content detected",
                    classification=rule.classification.value,
                )
                return rule.classification, rule.note

        return PageClassification.OK, None

    def visible_text(self, soup: BeautifulSoup) -> str:
        """Body text outside scripts, styles and code or quoted blocks."""
        scope = soup.body or soup
        parts = []
        for string in scope.find_all(string=True):
            if isinstance(string, Comment) or not isinstance(string, NavigableString):
                continue
            if string.find_parent(self.non_visible_tags):
                continue
            parts.append(str(string))
        return " ".join(" ".join(parts).split())

    def _matches(self, rule: DetectionRule, soup: BeautifulSoup, visible_text: str) -> bool:
        for phrase in rule.phrases:
            if phrase.lower() in visible_text:
                return True
        for selector in rule.selectors:
            if soup.select_one(selector) is not None:
                return True
        return False
