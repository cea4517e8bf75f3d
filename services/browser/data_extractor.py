import copy
from typing import Iterator, List, Optional
import html2text
from bs4 import BeautifulSoup, Tag
from structlog import get_logger  # type: ignore

from config.scraper_config import ScraperConfig
from models.page_model import (
    CodeBlock,
    ExtractedPage,
    Link,
    PageClassification,
    Section,
)
from utils.text_utils import clean_text, dedupe, truncate, truncate_section
from utils.url_utils import resolve_href

logger = get_logger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
LANG_CLASS_PREFIXES = ("language-", "lang-")


class SectionBuilder:
    """Accumulates headings and paragraphs into size-capped sections.

    A heading opens a new section; the previous one is kept only if it
    received content. Paragraphs with no open section are dropped.
    """

    def __init__(self, max_sections: int = ScraperConfig.MAX_SECTIONS):
        self.max_sections = max_sections
        self._sections: List[Section] = []
        self._level = 1
        self._heading: Optional[str] = None
        self._content = ""
        self._full = False

    def open(self, level: int, heading: str) -> None:
        self._flush()
        self._level = min(max(level, 1), 6)
        self._heading = truncate_section(heading, ScraperConfig.HEADING_MAX_CHARS)
        self._content = ""
        self._full = False

    def add_paragraph(self, text: str) -> None:
        if self._heading is None or self._full:
            return
        if len(text) < ScraperConfig.MIN_TEXT_CHARS:
            return

        text = truncate_section(text, ScraperConfig.PARAGRAPH_MAX_CHARS)
        content = f"{self._content}\n\n{text}" if self._content else text
        if len(content) > ScraperConfig.SECTION_MAX_CHARS:
            content = truncate_section(content, ScraperConfig.SECTION_MAX_CHARS)
            self._full = True
        self._content = content

    def build(self) -> List[Section]:
        self._flush()
        self._heading = None
        return self._sections[: self.max_sections]

    def _flush(self) -> None:
        if self._heading is not None and self._content:
            self._sections.append(
                Section(level=self._level, heading=self._heading, content=self._content)
            )
        self._content = ""


class DataExtractor:
    def __init__(
        self,
        content_selectors: Optional[List[str]] = None,
        chrome_selectors: Optional[List[str]] = None,
    ):
        self.content_selectors = content_selectors or ScraperConfig.CONTENT_SELECTORS
        self.chrome_selectors = chrome_selectors or ScraperConfig.CHROME_SELECTORS

    def extract(
        self,
        html: str,
        url: str,
        classification: PageClassification = PageClassification.OK,
        alerts: Optional[List[str]] = None,
        raw: bool = False,
    ) -> ExtractedPage:
        soup = BeautifulSoup(html, "html.parser")
        scope = soup if raw else self.select_content_scope(soup)

        sections = self.extract_sections(scope)
        page = ExtractedPage(
            url=url,
            classification=classification,
            title=self._extract_title(soup),
            site=self._extract_meta(soup, "og:site_name"),
            author=self._first(
                self._extract_meta(soup, "author"),
                self._extract_meta(soup, "article:author"),
            ),
            date=self._first(
                self._extract_meta(soup, "article:published_time"),
                self._extract_meta(soup, "date"),
                self._extract_meta(soup, "pubdate"),
            ),
            doi=self._extract_doi(soup),
            sections=sections,
            links=self.extract_links(scope, url),
            code=self.extract_code_blocks(scope),
            alerts=list(alerts or []),
            char_count=sum(len(s.content) + len(s.heading) for s in sections),
        )
        logger.debug(
            "[DataExtractor] Extracted page",
            url=url,
            sections=len(page.sections),
            links=len(page.links),
            code=len(page.code),
            chars=page.char_count,
        )
        return page

    # ----- content scope -----

    def select_content_scope(self, soup: BeautifulSoup) -> Tag:
        for selector in self.content_selectors:
            if (match := soup.select_one(selector)) is not None:
                return match

        if soup.body is not None:
            body = copy.copy(soup.body)
            for selector in self.chrome_selectors:
                for element in body.select(selector):
                    element.decompose()
            if body.get_text(strip=True):
                return body

        return soup

    # ----- metadata -----

    def _extract_title(self, soup: BeautifulSoup) -> Optional[str]:
        title = clean_text(soup.title.get_text()) if soup.title else ""
        if title:
            return title
        if og_title := self._extract_meta(soup, "og:title"):
            return og_title
        h1 = soup.find("h1")
        if h1 is None:
            return None
        return clean_text(h1.get_text(" ")) or None

    def _extract_meta(self, soup: BeautifulSoup, name: str) -> Optional[str]:
        for attr in ("property", "name"):
            tag = soup.find("meta", attrs={attr: name})
            if tag and (content := (tag.get("content") or "").strip()):
                return content
        return None

    def _extract_doi(self, soup: BeautifulSoup) -> Optional[str]:
        if doi := self._meta_by_name(soup, "citation_doi"):
            return doi
        identifier = self._meta_by_name(soup, "DC.identifier")
        if identifier and ("doi.org" in identifier or identifier.startswith("10.")):
            return identifier
        anchor = soup.select_one("a[href*='doi.org']")
        if anchor is not None:
            return anchor.get("href") or None
        return None

    def _meta_by_name(self, soup: BeautifulSoup, name: str) -> Optional[str]:
        tag = soup.find("meta", attrs={"name": name})
        if tag and (content := (tag.get("content") or "").strip()):
            return content
        return None

    @staticmethod
    def _first(*values: Optional[str]) -> Optional[str]:
        return next((v for v in values if v), None)

    # ----- sections -----

    def extract_sections(self, scope: Tag) -> List[Section]:
        builder = SectionBuilder()
        for element in scope.find_all(HEADING_TAGS + ["p"]):
            text = clean_text(element.get_text(" "))
            if not text:
                continue
            if element.name in HEADING_TAGS:
                builder.open(int(element.name[1]), text)
            else:
                builder.add_paragraph(text)

        sections = builder.build()
        if sections:
            return sections
        return self._fallback_sections(scope)

    def _fallback_sections(self, scope: Tag) -> List[Section]:
        converter = html2text.HTML2Text()
        converter.body_width = ScraperConfig.FALLBACK_WRAP_COLUMNS
        converter.ignore_links = True
        converter.ignore_images = True

        rendered = converter.handle(str(scope))
        lines = [line for line in rendered.splitlines() if line.strip()]
        text = "\n".join(lines[: ScraperConfig.FALLBACK_MAX_LINES])
        if not text:
            return []
        return [
            Section(
                level=1,
                heading="Content",
                content=truncate_section(text, ScraperConfig.SECTION_MAX_CHARS),
            )
        ]

    # ----- links -----

    def extract_links(self, scope: Tag, base_url: str) -> List[Link]:
        return dedupe(
            self._iter_links(scope, base_url),
            key=lambda link: link.url,
            limit=ScraperConfig.MAX_LINKS,
        )

    def _iter_links(self, scope: Tag, base_url: str) -> Iterator[Link]:
        for anchor in scope.find_all("a", href=True):
            href = anchor["href"].strip()
            if not href or href.startswith("#") or href.lower().startswith("javascript:"):
                continue
            text = clean_text(anchor.get_text(" "))
            if len(text) < ScraperConfig.MIN_TEXT_CHARS:
                continue
            yield Link(
                text=truncate(text, ScraperConfig.LINK_TEXT_MAX_CHARS),
                url=resolve_href(href, base_url),
            )

    # ----- code -----

    def extract_code_blocks(self, scope: Tag) -> List[CodeBlock]:
        candidates = list(scope.select("pre code")) + list(scope.find_all("pre"))
        blocks = []
        seen = set()

        for element in candidates:
            source = element.get_text().strip()
            if len(source) < ScraperConfig.MIN_CODE_CHARS or source in seen:
                continue
            seen.add(source)
            blocks.append(
                CodeBlock(
                    lang=self._detect_lang(element),
                    source=truncate_section(source, ScraperConfig.CODE_MAX_CHARS),
                )
            )
            if len(blocks) >= ScraperConfig.MAX_CODE_BLOCKS:
                break

        return blocks

    def _detect_lang(self, element: Tag) -> Optional[str]:
        related = [element]
        if element.name == "code" and isinstance(element.parent, Tag):
            related.append(element.parent)
        elif element.name == "pre" and (child := element.find("code")) is not None:
            related.append(child)

        for tag in related:
            for cls in tag.get("class") or []:
                for prefix in LANG_CLASS_PREFIXES:
                    if cls.startswith(prefix) and len(cls) > len(prefix):
                        return cls[len(prefix):]
        return None
