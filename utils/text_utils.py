import re
import unicodedata
from typing import Callable, Hashable, Iterable, List, Optional, TypeVar

T = TypeVar("T")

ELLIPSIS = "..."

_WHITESPACE_RE = re.compile(r"\s+")

# Code points that must stay attached to the character before them
_JOINERS = {"\u200c", "\u200d", "\ufe0e", "\ufe0f"}


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace runs and strip."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def floor_text_boundary(text: str, pos: int) -> int:
    """Largest index <= pos that does not split a character from its marks."""
    if pos >= len(text):
        return len(text)
    if pos <= 0:
        return 0
    while pos > 0 and (
        unicodedata.combining(text[pos])
        or text[pos] in _JOINERS
        or "\udc00" <= text[pos] <= "\udfff"
    ):
        pos -= 1
    return pos


def truncate(text: str, max_chars: int) -> str:
    """Cut to at most max_chars, ellipsis included."""
    if len(text) <= max_chars:
        return text
    end = floor_text_boundary(text, max(0, max_chars - len(ELLIPSIS)))
    return text[:end] + ELLIPSIS


def truncate_section(text: str, max_chars: int, space_window: int = 50) -> str:
    """Like truncate, but prefers to cut at a space close to the limit."""
    if len(text) <= max_chars:
        return text
    end = floor_text_boundary(text, max(0, max_chars - len(ELLIPSIS)))
    cut = text[:end]
    last_space = cut.rfind(" ")
    if last_space > 0 and last_space > end - space_window:
        return text[:last_space] + ELLIPSIS
    return cut + ELLIPSIS


def dedupe(items: Iterable[T], key: Callable[[T], Hashable], limit: Optional[int] = None) -> List[T]:
    """Keep the first item per key, in order, up to limit items."""
    seen = set()
    result: List[T] = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        result.append(item)
        if limit is not None and len(result) >= limit:
            break
    return result
