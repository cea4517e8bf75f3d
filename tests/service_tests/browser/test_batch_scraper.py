import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from models.page_model import ExtractedPage, PageClassification
from services.browser.batch_scraper import BatchScraper, pool_limit
from services.browser.browser_pool import BrowserPool
from services.browser.page_fetcher import PageFetcher, RetryPolicy
from services.browser.scraper import Scraper


@pytest.mark.parametrize(
    "parallel, url_count, expected",
    [
        (4, 10, 4),
        (4, 2, 2),
        (50, 100, 20),
        (0, 5, 1),
        (3, 0, 1),
    ],
)
def test_pool_limit(parallel, url_count, expected):
    assert pool_limit(parallel, url_count) == expected


@pytest.mark.asyncio
async def test_run_preserves_input_order(make_engine, fake_response):
    urls = [f"https://site{i}.example/page" for i in range(6)]
    responses = {
        url: [fake_response(title=f"Page {i}", delay=0.01 * (6 - i))]
        for i, url in enumerate(urls)
    }
    engine = make_engine(responses=responses)

    pages = await BatchScraper.run(urls, parallel=3, engine=engine)

    assert [p.url for p in pages] == urls
    assert all(p.classification == PageClassification.OK for p in pages)
    assert engine.max_open_tabs <= 3
    assert engine.closed


@pytest.mark.asyncio
async def test_fetch_batch_isolates_failures(make_engine, fake_response):
    good, bad = "https://good.example/", "https://bad.example/"
    engine = make_engine(
        responses={bad: [fake_response(error="net::ERR_NAME_NOT_RESOLVED")]}
    )

    async with BrowserPool(2, engine=engine) as pool:
        scraper = Scraper(pool, fetcher=PageFetcher(retry_policy=RetryPolicy(retries=1, delay_s=0)))
        pages = await BatchScraper(scraper).fetch_batch([good, bad, good])

    assert [p.classification for p in pages] == [
        PageClassification.OK,
        PageClassification.DEAD,
        PageClassification.OK,
    ]


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_record():
    scraper = MagicMock()
    scraper.fetch = AsyncMock(
        side_effect=[
            ExtractedPage(url="https://a.example/", classification=PageClassification.OK),
            RuntimeError("kaboom"),
        ]
    )

    pages = await BatchScraper(scraper).fetch_batch(["https://a.example/", "https://b.example/"])

    assert pages[0].classification == PageClassification.OK
    assert pages[1].classification == PageClassification.DEAD
    assert pages[1].alerts == ["Unexpected error: kaboom"]


@pytest.mark.asyncio
async def test_cancellation_propagates():
    scraper = MagicMock()
    scraper.fetch = AsyncMock(side_effect=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await BatchScraper(scraper).fetch_batch(["https://a.example/"])


@pytest.mark.asyncio
async def test_verify_batch(make_engine, fake_response):
    urls = ["https://ok.example/", "https://gone.example/"]
    engine = make_engine(responses={urls[1]: [fake_response(title="Page not found")]})

    async with BrowserPool(2, engine=engine) as pool:
        results = await BatchScraper(Scraper(pool)).verify_batch(urls)

    assert [r.classification for r in results] == [
        PageClassification.OK,
        PageClassification.DEAD,
    ]
    assert results[1].note == "HTTP 404"


@pytest.mark.asyncio
async def test_refresh_batch_unexpected_error():
    scraper = Scraper(MagicMock())
    scraper.refresh = AsyncMock(side_effect=RuntimeError("pool exploded"))

    results = await BatchScraper(scraper).refresh_batch(["https://example.com/"])

    assert not results[0].success
    assert results[0].error == "Unexpected error: pool exploded"
