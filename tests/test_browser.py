import asyncio

import pytest

from tokscrape.browser import BrowserFetcher, _cookie_list
from tokscrape.config import Settings
from tokscrape.errors import NotFoundError


class FakePage:
    def __init__(self, response, html):
        self.response = response
        self.html = html
        self.goto_kwargs = None

    async def goto(self, url, **kwargs):
        self.goto_kwargs = kwargs
        return self.response

    async def content(self):
        return self.html


class FakeContext:
    def __init__(self, page):
        self.page = page
        self.cookies = []

    async def add_cookies(self, cookies):
        self.cookies.extend(cookies)

    async def new_page(self):
        return self.page


class FakeBrowser:
    def __init__(self, page):
        self.ctx = FakeContext(page)
        self.closed = False

    async def new_context(self, **kwargs):
        return self.ctx

    async def close(self):
        self.closed = True


class FakePlaywright:
    def __init__(self, page):
        self.browser = FakeBrowser(page)
        self.launches = []
        self.chromium = self

    async def launch(self, **kwargs):
        self.launches.append(kwargs)
        return self.browser

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


@pytest.fixture
def fake_playwright(monkeypatch):
    def _install(response=object(), html="<html></html>") -> FakePlaywright:
        pw = FakePlaywright(FakePage(response, html))
        monkeypatch.setattr("playwright.async_api.async_playwright", lambda: pw)
        return pw
    return _install


@pytest.mark.unit
class Describe_cookie_list:
    def test_should_split_header_into_cookies(self):
        cookies = _cookie_list("msToken=abc; tt_csrf=x=y; broken")
        assert [(c["name"], c["value"]) for c in cookies] == [("msToken", "abc"), ("tt_csrf", "x=y")]
        assert all(c["domain"] == ".tiktok.com" for c in cookies)


@pytest.mark.unit
class Describe_BrowserFetcher:
    def test_should_return_rendered_html_and_close(self, fake_playwright):
        """渲染完成后应返回页面 HTML 并关闭浏览器。"""
        pw = fake_playwright(html="<html>rendered</html>")
        html = asyncio.run(BrowserFetcher(Settings(timeout=5)).render("https://www.tiktok.com/@a"))
        assert html == "<html>rendered</html>"
        assert pw.browser.closed
        assert pw.launches[0]["headless"] is True
        assert pw.browser.ctx.page.goto_kwargs["timeout"] == 5000

    def test_should_pass_configured_cookies(self, fake_playwright):
        pw = fake_playwright()
        asyncio.run(BrowserFetcher(Settings(cookies="a=1")).render("https://x"))
        assert pw.browser.ctx.cookies[0]["name"] == "a"

    def test_given_no_response_should_raise_not_found_and_close(self, fake_playwright):
        """页面加载失败时应抛出 NotFoundError，浏览器仍需关闭。"""
        pw = fake_playwright(response=None)
        with pytest.raises(NotFoundError):
            asyncio.run(BrowserFetcher().render("https://x"))
        assert pw.browser.closed
