import re
from pathlib import Path
from typing import List, Optional, Tuple, Union
from PyPDF2 import PdfReader
from structlog import get_logger  # type: ignore

from config.scraper_config import ScraperConfig
from exceptions.custom_exceptions import ExtractionError
from models.page_model import (
    CodeBlock,
    ExtractedPage,
    Link,
    PageClassification,
    Section,
)
from services.browser.data_extractor import SectionBuilder
from utils.text_utils import dedupe, truncate
from utils.url_utils import extract_urls

logger = get_logger(__name__)

_MARKDOWN_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*$")
_NUMBERED_HEADING_RE = re.compile(r"^(\d+(?:\.\d+)*)\.?\s+[A-Z][^.!?]{0,80}$")
_UPPERCASE_HEADING_RE = re.compile(
    r"^(?:(?:\d+\.?\s+)?[A-Z][A-Z\s]+$|(?:Chapter|Section|Part)\s+\d+)"
)

_AUTHOR_RE = re.compile(r"(?i)(?:author|by|written by)[:\s]+([^\n]+)")
_DATE_RE = re.compile(
    r"(?i)(?:date|published|updated)[:\s]+(\d{4}[-/]\d{2}[-/]\d{2}|\w+\s+\d{1,2},?\s+\d{4})"
)
_DOI_RE = re.compile(r"(?i)(?:doi[:\s]+|https?://doi\.org/)(10\.\d{4,}/[^\s\)]+)")

_CODE_MARKERS = (
    "def ",
    "fn ",
    "function ",
    "class ",
    "import ",
    "package ",
    "//",
    "/*",
    "#include",
)
MIN_CODE_LINES = 3
MIN_CODE_BLOCK_CHARS = 20


class PdfExtractor:
    """Builds ExtractedPage records from text decoded out of PDF files."""

    def read_text(self, path: Union[str, Path]) -> str:
        logger.info(f"[PdfExtractor] Extracting text from: {path}")
        try:
            reader = PdfReader(str(path))
            pages = [page.extract_text() or "" for page in reader.pages]
        except Exception as e:
            logger.exception("[PdfExtractor] PDF extraction failed", path=str(path))
            raise ExtractionError(f"PDF extraction failed: {e}") from e

        text = "\n".join(pages)
        logger.info("[PdfExtractor] Extracted text", path=str(path), chars=len(text), pages=len(pages))
        return text

    def extract_file(self, path: Union[str, Path]) -> ExtractedPage:
        path = Path(path)
        url = path.resolve().as_uri()

        if not path.exists():
            return ExtractedPage.dead(url, "File not found")

        try:
            text = self.read_text(path)
        except ExtractionError as e:
            return ExtractedPage.dead(url, e.message)

        if not text.strip():
            return ExtractedPage.dead(url, "PDF contains no extractable text")

        return self.extract_text(text, url, fallback_title=path.stem)

    def extract_text(
        self, text: str, url: str, fallback_title: Optional[str] = None
    ) -> ExtractedPage:
        sections = self.parse_sections(text)
        return ExtractedPage(
            url=url,
            classification=PageClassification.OK,
            title=self._extract_title(text) or fallback_title,
            author=self._search(_AUTHOR_RE, text, max_len=200),
            date=self._search(_DATE_RE, text),
            doi=self._search(_DOI_RE, text),
            sections=sections,
            links=self.extract_links(text),
            code=self.extract_code(text),
            char_count=sum(len(s.content) + len(s.heading) for s in sections),
        )

    # ----- sections -----

    def detect_heading(self, line: str) -> Optional[Tuple[int, str]]:
        """Return (level, heading) when a line looks like a heading."""
        if match := _MARKDOWN_HEADING_RE.match(line):
            return len(match.group(1)), match.group(2)

        if match := _NUMBERED_HEADING_RE.match(line):
            depth = len([part for part in match.group(1).split(".") if part])
            return min(depth, 6), line

        if _UPPERCASE_HEADING_RE.match(line) or self._is_uppercase_run(line):
            return 1, line

        return None

    @staticmethod
    def _is_uppercase_run(line: str) -> bool:
        if not 3 < len(line) < 100:
            return False
        upper = sum(1 for c in line if c.isupper())
        return upper > len(line) // 2

    def parse_sections(self, text: str) -> List[Section]:
        builder = SectionBuilder(max_sections=ScraperConfig.MAX_PDF_SECTIONS)
        builder.open(1, "Content")
        paragraph: List[str] = []

        def flush_paragraph():
            if paragraph:
                builder.add_paragraph(" ".join(paragraph))
                paragraph.clear()

        for line in text.splitlines():
            stripped = line.strip()
            if not stripped:
                flush_paragraph()
                continue

            if heading := self.detect_heading(stripped):
                flush_paragraph()
                builder.open(*heading)
            else:
                paragraph.append(stripped)

        flush_paragraph()
        return builder.build()

    # ----- metadata -----

    def _extract_title(self, text: str) -> Optional[str]:
        for line in text.splitlines():
            stripped = line.strip()
            if stripped:
                if 3 < len(stripped) < 200:
                    return stripped.lstrip("#").strip() or None
                return None
        return None

    @staticmethod
    def _search(pattern: re.Pattern, text: str, max_len: Optional[int] = None) -> Optional[str]:
        match = pattern.search(text)
        if not match:
            return None
        value = match.group(1).strip()
        if max_len is not None and len(value) >= max_len:
            return None
        return value or None

    # ----- links & code -----

    def extract_links(self, text: str) -> List[Link]:
        return [
            Link(text=truncate(url, ScraperConfig.LINK_TEXT_MAX_CHARS), url=url)
            for url in extract_urls(text)[: ScraperConfig.MAX_LINKS]
        ]

    def extract_code(self, text: str) -> List[CodeBlock]:
        blocks: List[CodeBlock] = []
        run: List[str] = []

        def flush_run():
            if len(run) >= MIN_CODE_LINES:
                source = "\n".join(run)
                if len(source) >= MIN_CODE_BLOCK_CHARS:
                    blocks.append(
                        CodeBlock(
                            lang=detect_language(source),
                            source=truncate(source, ScraperConfig.CODE_MAX_CHARS),
                        )
                    )
            run.clear()

        for line in text.splitlines():
            if self._is_code_line(line):
                run.append(line)
            else:
                flush_run()
        flush_run()

        return dedupe(blocks, key=lambda block: block.source, limit=ScraperConfig.MAX_CODE_BLOCKS)

    @staticmethod
    def _is_code_line(line: str) -> bool:
        if line.startswith("    ") or line.startswith("\t"):
            return bool(line.strip())
        return line.lstrip().startswith(_CODE_MARKERS)


def detect_language(source: str) -> Optional[str]:
    if "fn " in source and "->" in source:
        return "rust"
    if "def " in source and ":" in source:
        return "python"
    if "function " in source or "const " in source or "let " in source:
        return "javascript"
    if "public class" in source or "private " in source:
        return "java"
    if "#include" in source:
        return "c"
    return None
