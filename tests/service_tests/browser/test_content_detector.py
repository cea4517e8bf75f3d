import pytest
from bs4 import BeautifulSoup

from models.page_model import ErrorKind, NavigationOutcome, PageClassification
from services.browser.content_detector import (
    ContentDetector,
    DetectionRule,
    LOGIN_RULE,
    PAYWALL_RULE,
)

URL = "https://www.example.com/post"

PAYWALL_HTML = "<html><body><p>Subscribe to continue reading this story.</p></body></html>"
LOGIN_HTML = "<html><body><p>Please sign in to see the rest.</p></body></html>"
BOTH_HTML = (
    "<html><body><p>Please sign in to continue.</p>"
    "<p>This is premium content for subscribers.</p></body></html>"
)
PLAIN_HTML = "<html><body><main><h1>Title</h1><p>Ordinary article text.</p></main></body></html>"


def ok_outcome(**kwargs):
    values = {"status_guess": 200, "title": "Post", "final_url": URL}
    values.update(kwargs)
    return NavigationOutcome(**values)


@pytest.fixture
def detector():
    return ContentDetector()


def test_failed_navigation_is_dead(detector):
    outcome = NavigationOutcome(error_kind=ErrorKind.DNS_FAILED, error="net::ERR_NAME_NOT_RESOLVED")
    assert detector.classify(URL, outcome) == (PageClassification.DEAD, "net::ERR_NAME_NOT_RESOLVED")


@pytest.mark.parametrize("status", [404, 500, 502, 503, 599])
def test_error_status_is_dead(detector, status):
    classification, note = detector.classify(URL, ok_outcome(status_guess=status), PLAIN_HTML)
    assert classification == PageClassification.DEAD
    assert note == f"HTTP {status}"


def test_forbidden_is_not_dead(detector):
    classification, _ = detector.classify(URL, ok_outcome(status_guess=403), PLAIN_HTML)
    assert classification == PageClassification.OK


def test_real_error_status_is_dead(detector):
    outcome = ok_outcome(status_guess=200, http_status=404)
    assert detector.classify(URL, outcome) == (PageClassification.DEAD, "HTTP 404")


@pytest.mark.parametrize("title_status", [404, 500, 503])
def test_soft_error_page_is_dead(detector, title_status):
    outcome = ok_outcome(status_guess=title_status, http_status=200)
    assert detector.classify(URL, outcome, PLAIN_HTML) == (
        PageClassification.DEAD,
        f"HTTP {title_status}",
    )


def test_real_status_wins_for_redirect_check(detector):
    outcome = ok_outcome(status_guess=403, http_status=200, final_url="https://other.org/")
    assert detector.classify(URL, outcome)[0] == PageClassification.REDIRECT


def test_cross_host_redirect(detector):
    outcome = ok_outcome(final_url="https://consent.other.org/landing")
    assert detector.classify(URL, outcome, PLAIN_HTML) == (
        PageClassification.REDIRECT,
        "https://consent.other.org/landing",
    )


def test_www_difference_is_not_redirect(detector):
    outcome = ok_outcome(final_url="https://Example.com/post?ref=1")
    assert detector.classify(URL, outcome, PLAIN_HTML) == (PageClassification.OK, None)


def test_missing_final_url_is_not_redirect(detector):
    assert detector.classify_navigation(URL, ok_outcome(final_url=None)) is None


def test_redirect_outranks_paywall(detector):
    outcome = ok_outcome(final_url="https://news.other.org/paywalled")
    classification, _ = detector.classify(URL, outcome, PAYWALL_HTML)
    assert classification == PageClassification.REDIRECT


def test_paywall_phrase(detector):
    assert detector.classify_content(PAYWALL_HTML) == (PageClassification.PAYWALL, "Paywall detected")


def test_login_phrase(detector):
    assert detector.classify_content(LOGIN_HTML) == (PageClassification.LOGIN, "Login required")


def test_paywall_outranks_login(detector):
    classification, _ = detector.classify_content(BOTH_HTML)
    assert classification == PageClassification.PAYWALL


def test_paywall_selector(detector):
    html = '<html><body><div class="article-paywall-overlay"></div><p>Teaser</p></body></html>'
    assert detector.classify_content(html)[0] == PageClassification.PAYWALL


def test_login_selector(detector):
    html = '<html><body><div id="login-modal-root"></div><p>Teaser</p></body></html>'
    assert detector.classify_content(html)[0] == PageClassification.LOGIN


def test_phrases_in_code_and_quotes_are_ignored(detector):
    html = (
        "<html><body><p>How we built our checkout.</p>"
        "<pre><code>if user.blocked: show('subscribe to continue')</code></pre>"
        "<blockquote>Please sign in to continue, it said.</blockquote>"
        "<script>var msg = 'paywall';</script>"
        "</body></html>"
    )
    assert detector.classify_content(html) == (PageClassification.OK, None)


def test_plain_page_is_ok(detector):
    assert detector.classify(URL, ok_outcome(), PLAIN_HTML) == (PageClassification.OK, None)


def test_no_html_after_clean_navigation_is_ok(detector):
    assert detector.classify(URL, ok_outcome()) == (PageClassification.OK, None)


def test_rules_are_extendable():
    cookie_rule = DetectionRule(
        classification=PageClassification.LOGIN,
        phrases=("accept cookies to read",),
        selectors=(),
        note="Cookie wall",
    )
    detector = ContentDetector(rules=[PAYWALL_RULE, cookie_rule, LOGIN_RULE])
    html = "<html><body><p>Accept cookies to read this page.</p></body></html>"
    assert detector.classify_content(html) == (PageClassification.LOGIN, "Cookie wall")


def test_visible_text_skips_hidden_tags(detector):
    soup = BeautifulSoup(
        "<html><body><p>Shown</p><style>.x{}</style><noscript>Hidden</noscript></body></html>",
        "html.parser",
    )
    assert detector.visible_text(soup) == "Shown"
