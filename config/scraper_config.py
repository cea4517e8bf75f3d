import os
from typing import List, Tuple

from models.page_model import ErrorKind


class ScraperConfig:
    # ===== CONCURRENCY =====
    MIN_CONCURRENCY: int = 1
    MAX_CONCURRENCY: int = 20
    DEFAULT_CONCURRENCY: int = int(os.getenv("SCRAPER_CONCURRENCY", "4"))

    # ===== TIMEOUTS =====
    PAGE_TIMEOUT_MS: int = int(os.getenv("SCRAPER_TIMEOUT_MS", "30000"))
    CHECK_TIMEOUT_MS: int = int(os.getenv("SCRAPER_CHECK_TIMEOUT_MS", "15000"))
    SHUTDOWN_GRACE_MS: int = int(os.getenv("SCRAPER_SHUTDOWN_GRACE_MS", "5000"))

    # ===== RETRY =====
    RETRIES: int = int(os.getenv("SCRAPER_RETRIES", "1"))
    RETRY_DELAY_S: float = float(os.getenv("SCRAPER_RETRY_DELAY_S", "1.0"))

    # ===== BROWSER =====
    HEADLESS: bool = os.getenv("SCRAPER_HEADLESS", "true").lower() != "false"
    BROWSER_ARGS: List[str] = [
        "--no-sandbox",
        "--disable-gpu",
        "--disable-dev-shm-usage",
        "--disable-setuid-sandbox",
        "--no-first-run",
    ]

    # ===== USER AGENT =====
    USER_AGENT: str = os.getenv(
        "SCRAPER_USER_AGENT",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    )

    # ===== NAVIGATION ERROR MAPPING (substring, kind), first match wins =====
    NAVIGATION_ERROR_RULES: List[Tuple[str, ErrorKind]] = [
        ("ERR_NAME_NOT_RESOLVED", ErrorKind.DNS_FAILED),
        ("ERR_CONNECTION_REFUSED", ErrorKind.CONNECTION_REFUSED),
        ("ERR_CONNECTION_TIMED_OUT", ErrorKind.TIMEOUT),
        ("Timeout", ErrorKind.TIMEOUT),
        ("ERR_CERT", ErrorKind.SSL_ERROR),
        ("SSL", ErrorKind.SSL_ERROR),
    ]

    # ===== STATUS GUESS FROM PAGE TITLE (needles, status) =====
    TITLE_STATUS_RULES: List[Tuple[Tuple[str, ...], int]] = [
        (("404", "not found"), 404),
        (("403", "forbidden", "access denied"), 403),
        (("500", "internal server error"), 500),
    ]

    # ===== PAYWALL DETECTION =====
    PAYWALL_PHRASES: List[str] = [
        "subscribe to continue",
        "subscription required",
        "premium content",
        "paywall",
        "member-only",
        "members only",
        "unlock this article",
        "purchase to read",
        "buy now to read",
        "paid subscribers",
    ]
    PAYWALL_SELECTORS: List[str] = [
        "[class*='paywall']",
        "[id*='paywall']",
        "[class*='subscription-wall']",
        "[class*='piano-offer']",
        "[class*='premium-wall']",
    ]

    # ===== LOGIN WALL DETECTION =====
    LOGIN_PHRASES: List[str] = [
        "sign in to continue",
        "log in to continue",
        "login to continue",
        "please sign in",
        "please log in",
        "create an account to",
        "sign up to view",
        "register to view",
        "authentication required",
    ]
    LOGIN_SELECTORS: List[str] = [
        "[class*='login-wall']",
        "[class*='auth-wall']",
        "[class*='signup-wall']",
        "[id*='login-modal']",
        "[class*='gate-content']",
    ]

    # Tags whose text never counts as visible page copy for phrase matching
    NON_VISIBLE_TAGS: List[str] = [
        "script",
        "style",
        "noscript",
        "template",
        "pre",
        "code",
        "blockquote",
    ]

    # ===== MAIN CONTENT CASCADE =====
    CONTENT_SELECTORS: List[str] = [
        "main",
        "article",
        "[role='main']",
        ".post-content",
        ".article-content",
        ".entry-content",
        "#content",
        ".content",
    ]
    CHROME_SELECTORS: List[str] = [
        "nav",
        "header",
        "footer",
        "aside",
        "[class*='cookie']",
        "[id*='cookie']",
    ]

    # ===== EXTRACTION LIMITS =====
    MIN_TEXT_CHARS: int = 3
    MIN_CODE_CHARS: int = 10
    HEADING_MAX_CHARS: int = 200
    PARAGRAPH_MAX_CHARS: int = 2000
    SECTION_MAX_CHARS: int = 10000
    LINK_TEXT_MAX_CHARS: int = 100
    CODE_MAX_CHARS: int = 5000
    MAX_SECTIONS: int = 50
    MAX_PDF_SECTIONS: int = 100
    MAX_LINKS: int = 50
    MAX_CODE_BLOCKS: int = 20
    FALLBACK_WRAP_COLUMNS: int = 120
    FALLBACK_MAX_LINES: int = 100
