import httpx
import pytest

from agentnamix.domain.events import NavigateAction, TypeAction
from agentnamix.tools.handlers.browser import (
    SCRAPE_CONTENT_LIMIT,
    BrowserSession,
    PageFetchError,
    build_search_url,
    fetch_page,
    find_link,
)
from agentnamix.tools.schemas import BrowserActionArgs, WebScrapeArgs


PAGE = "Bienvenido a la documentación oficial del proyecto de ejemplo.\n"


class FakeFetch:
    def __init__(self, pages=None, errors=None):
        self.pages = pages or {}
        self.errors = errors or {}
        self.urls = []

    def __call__(self, url):
        self.urls.append(url)
        if url in self.errors:
            raise PageFetchError(self.errors[url])
        return self.pages.get(url, PAGE)


def action(**kw):
    return BrowserActionArgs.model_validate(kw)


def test_navigate_updates_session():
    events = []
    fetch = FakeFetch(pages={"https://example.com": PAGE + "[Docs](/docs)"})
    session = BrowserSession(on_action=events.append, fetch=fetch)
    result = session.perform(action(action="NAVIGATE", value="example.com"))

    assert result.success is True
    assert result.data["current_url"] == "https://example.com"
    assert "Bienvenido" in result.data["page_content_snippet"]
    assert events == [NavigateAction(url="example.com")]


def test_navigate_not_found_gives_suggestion():
    fetch = FakeFetch(errors={"https://missing.example.com": "not_found"})
    session = BrowserSession(fetch=fetch)
    result = session.perform(action(action="NAVIGATE", value="https://missing.example.com"))

    assert result.success is False
    assert "no encontrada" in result.data["message"]
    assert "TYPE" in result.data["message"]
    assert result.data["current_url"] == "https://www.google.com"
    assert result.data["page_content_snippet"] == "No data"


def test_click_resolves_relative_link():
    content = PAGE + "[Inicio](index.html)\n[Guía de inicio rápido](start.html)\n"
    fetch = FakeFetch(pages={"https://example.com/docs/": content})
    session = BrowserSession(fetch=fetch, start_url="https://example.com")
    session.perform(action(action="NAVIGATE", value="https://example.com/docs/"))
    result = session.perform(action(action="CLICK", target="inicio rápido"))

    assert result.success is True
    assert fetch.urls[-1] == "https://example.com/docs/start.html"
    assert session.current_url == "https://example.com/docs/start.html"


def test_click_missing_link_lists_visible_links():
    content = PAGE + "[Precios](/pricing)\n[Contacto](/contact)\n[FAQ](/faq)\n"
    fetch = FakeFetch(pages={"https://example.com": content})
    session = BrowserSession(fetch=fetch)
    session.perform(action(action="NAVIGATE", value="https://example.com"))
    result = session.perform(action(action="CLICK", target="Blog"))

    assert result.success is False
    message = result.data["message"]
    assert '"Precios"' in message and '"Contacto"' in message
    # 3 个字符以内的链接文本不作为建议
    assert '"FAQ"' not in message


def test_click_without_target_is_error():
    session = BrowserSession(fetch=FakeFetch())
    result = session.perform(action(action="CLICK"))
    assert result.success is False
    assert result.data["message"].startswith("Error Crítico del Navegador")


def test_type_searches_current_site():
    events = []
    fetch = FakeFetch()
    session = BrowserSession(on_action=events.append, fetch=fetch)
    result = session.perform(action(action="TYPE", value="python asyncio"))

    assert result.success is True
    assert fetch.urls == ["https://www.google.com/search?q=python%20asyncio"]
    assert events == [TypeAction(text="python asyncio")]


def test_build_search_url_unknown_site_uses_site_filter():
    url = build_search_url("https://docs.python.org/3/", "typing")
    assert url == "https://www.google.com/search?q=site:docs.python.org+typing"
    assert build_search_url("https://www.amazon.com/", "libro").startswith("https://www.amazon.com/s?k=")


def test_find_link_prefers_urls_and_exact_text():
    content = "[Python](https://python.org)\n[Python Docs](https://docs.python.org)"
    assert find_link(content, "https://x.com") == "https://x.com"
    assert find_link(content, "www.x.com") == "https://www.x.com"
    assert find_link(content, "python") == "https://python.org"
    assert find_link(content, "Ruby") is None


def test_scrape_truncates_and_keeps_session():
    fetch = FakeFetch(pages={"https://big.example.com": "a" * (SCRAPE_CONTENT_LIMIT + 500)})
    session = BrowserSession(fetch=fetch)
    result = session.scrape(WebScrapeArgs(url="big.example.com"))

    assert result.success is True
    assert len(result.data["content"]) == SCRAPE_CONTENT_LIMIT
    assert session.current_url == "https://www.google.com"


def test_scrape_failure_message():
    fetch = FakeFetch(errors={"https://slow.example.com": "timeout"})
    result = BrowserSession(fetch=fetch).scrape(WebScrapeArgs(url="https://slow.example.com"))
    assert result.success is False
    assert result.data["message"].startswith("Fallo al extraer https://slow.example.com")


class Resp:
    def __init__(self, status_code, text="", reason_phrase="OK"):
        self.status_code = status_code
        self.text = text
        self.reason_phrase = reason_phrase


def patch_client(monkeypatch, resp, calls=None):
    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def get(self, url, **kw):
            if calls is not None:
                calls.append((url, kw))
            if isinstance(resp, Exception):
                raise resp
            return resp

    monkeypatch.setattr("httpx.Client", Client)


def test_fetch_page_uses_proxy(monkeypatch):
    calls = []
    patch_client(monkeypatch, Resp(200, PAGE), calls)
    assert fetch_page("https://example.com", proxy="https://proxy.test/") == PAGE
    url, kw = calls[0]
    assert url == "https://proxy.test/https://example.com"
    assert kw["headers"]["X-Target-Selector"] == "body"


@pytest.mark.parametrize(
    "resp,kind",
    [
        (Resp(404), "not_found"),
        (Resp(403), "access_denied"),
        (Resp(500, reason_phrase="Internal Server Error"), "http"),
        (Resp(200, "corto"), "empty"),
        (httpx.ConnectTimeout("slow"), "timeout"),
        (httpx.ConnectError("refused"), "network"),
    ],
)
def test_fetch_page_errors(monkeypatch, resp, kind):
    patch_client(monkeypatch, resp)
    with pytest.raises(PageFetchError) as exc:
        fetch_page("https://example.com", proxy="https://proxy.test/")
    assert exc.value.kind == kind


def test_fetch_page_http_error_message(monkeypatch):
    patch_client(monkeypatch, Resp(502, reason_phrase="Bad Gateway"))
    with pytest.raises(PageFetchError) as exc:
        fetch_page("https://example.com", proxy="https://proxy.test/")
    assert exc.value.message == "Error HTTP 502: Bad Gateway"
