import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from tokscrape.config import Settings


@pytest.fixture
def fixture_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def load_fixture(fixture_dir):
    def _loader(name: str) -> Any:
        with open(fixture_dir / name, "r", encoding="utf-8") as f:
            return json.load(f)
    return _loader


@pytest.fixture
def video_state(load_fixture):
    return load_fixture("video_state.json")


@pytest.fixture
def user_state(load_fixture):
    return load_fixture("user_state.json")


@pytest.fixture
def hashtag_state(load_fixture):
    return load_fixture("hashtag_state.json")


def page_html(state_text: str) -> str:
    return (
        "<!DOCTYPE html><html><head><title>TikTok</title></head><body>"
        '<div id="app"></div>'
        f'<script id="SIGI_STATE" type="application/json">{state_text}</script>'
        '<script>window.SIGI_RETRY=1</script>'
        "</body></html>"
    )


@pytest.fixture
def make_page():
    def _make(state) -> str:
        text = state if isinstance(state, str) else json.dumps(state)
        return page_html(text)
    return _make


class FakeBrowserFetcher:
    def __init__(self, html: str = "", error: Exception = None):
        self.html = html
        self.error = error
        self.calls: list[str] = []

    async def render(self, url: str) -> str:
        self.calls.append(url)
        if self.error:
            raise self.error
        return self.html


@pytest.fixture
def fake_browser():
    def _factory(html: str = "", error: Exception = None) -> FakeBrowserFetcher:
        return FakeBrowserFetcher(html=html, error=error)
    return _factory


class Router:
    """Route httpx requests by URL path to canned responses or callables."""

    def __init__(self, routes: dict[str, Any] = None):
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, json={})
        if callable(handler):
            return handler(request)
        return handler

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def mock_client():
    """Build an AsyncClient whose transport is a Router over ``routes``."""
    def _factory(routes: dict[str, Any] = None, settings: Settings = None) -> tuple[httpx.AsyncClient, Router]:
        from tokscrape.http import _headers

        router = Router(routes)
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(router),
            headers=_headers(settings),
            follow_redirects=True,
        )
        return client, router
    return _factory


@pytest.fixture
def detail_response() -> Callable[..., httpx.Response]:
    def _make(urls=None, detail: Any = ...) -> httpx.Response:
        if detail is ...:
            detail = {"video": {"play_addr": {"url_list": urls or []}}}
        return httpx.Response(200, json={"aweme_detail": detail})
    return _make
