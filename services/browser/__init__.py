from services.browser.engine import BrowserEngine, EngineTab, PlaywrightEngine
from services.browser.browser_pool import BrowserPool, PageHandle
from services.browser.concurrency_limiter import ConcurrencyLimiter
from services.browser.content_detector import ContentDetector, DetectionRule
from services.browser.data_extractor import DataExtractor
from services.browser.pdf_extractor import PdfExtractor
from services.browser.live_data_extractor import LiveDataExtractor
from services.browser.page_fetcher import PageFetcher, RetryPolicy
from services.browser.scraper import Scraper
from services.browser.batch_scraper import BatchScraper

__all__ = [
    "BrowserEngine",
    "EngineTab",
    "PlaywrightEngine",
    "BrowserPool",
    "PageHandle",
    "ConcurrencyLimiter",
    "ContentDetector",
    "DetectionRule",
    "DataExtractor",
    "PdfExtractor",
    "LiveDataExtractor",
    "PageFetcher",
    "RetryPolicy",
    "Scraper",
    "BatchScraper",
]
