import re
from typing import List, Optional
from urllib.parse import urljoin, urlparse

_URL_RE = re.compile(r"""https?://[^\s\)>\]"'`]+""")
_TRAILING_PUNCTUATION = ",.)];:"


def normalize_host(host: Optional[str]) -> str:
    """Lowercase a host and strip one leading 'www.' label."""
    if not host:
        return ""
    host = host.lower()
    if host.startswith("www."):
        host = host[len("www."):]
    return host


def host_of(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def is_cross_host(requested_url: str, final_url: Optional[str]) -> bool:
    """True when both hosts are known and differ after www-normalization."""
    requested = host_of(requested_url)
    final = host_of(final_url)
    if not requested or not final:
        return False
    return normalize_host(requested) != normalize_host(final)


def resolve_href(href: str, base_url: Optional[str]) -> str:
    if not base_url:
        return href
    try:
        return urljoin(base_url, href)
    except ValueError:
        return href


def extract_urls(text: str) -> List[str]:
    """Unique http(s) URLs in order of first appearance."""
    seen = set()
    urls = []
    for match in _URL_RE.finditer(text or ""):
        url = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        if url and url not in seen:
            seen.add(url)
            urls.append(url)
    return urls
