"""Embedded page state: locate it in a document and fetch it with fallback.

TikTok inlines the data its client app would otherwise request into a
``<script id="SIGI_STATE" type="application/json">`` element. When the plain
HTTP response is an anti-bot placeholder the element is missing or empty, and
the page has to be rendered in a real browser instead.
"""

import json
import logging
import re

from .errors import ExtractionError, ParseError

logger = logging.getLogger("tokscrape.state")

STATE_SCRIPT_ID = "SIGI_STATE"

_OPEN_RE = re.compile(
    r"<script\b[^>]*\bid\s*=\s*[\"']" + STATE_SCRIPT_ID + r"[\"'][^>]*>",
    re.IGNORECASE,
)
_CLOSE = "</script>"


def extract_state(html: str) -> str:
    """Return the raw text of the SIGI_STATE script element.

    Raises ParseError if the opening marker is absent. The returned text is
    not validated; use :func:`is_usable_state` for that.
    """
    m = _OPEN_RE.search(html or "")
    if not m:
        raise ParseError(f"{STATE_SCRIPT_ID} 标记不存在")
    start = m.end()
    end = html.find(_CLOSE, start)
    if end == -1:
        return html[start:]
    return html[start:end]


def is_usable_state(text: str) -> bool:
    """Decision predicate for the fallback: text must be a non-empty JSON object."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return False
    return isinstance(data, dict) and bool(data)


def _try_state(html: str):
    try:
        raw = extract_state(html)
    except ParseError:
        return None
    if not is_usable_state(raw):
        return None
    return json.loads(raw)


class FetchOrchestrator:
    """Two-strategy resolver: plain HTTP first, headless browser second.

    ``last_strategy`` records which strategy produced the most recent result
    ("http" or "browser").
    """

    def __init__(self, page_fetcher, browser_fetcher):
        self.page_fetcher = page_fetcher
        self.browser_fetcher = browser_fetcher
        self.last_strategy = ""

    async def fetch(self, url: str) -> dict:
        html = await self.page_fetcher.fetch(url)
        state = _try_state(html)
        if state is not None:
            self.last_strategy = "http"
            return state

        logger.warning(f"页面未包含可用的 {STATE_SCRIPT_ID}，改用浏览器渲染: {url}")
        html = await self.browser_fetcher.render(url)
        state = _try_state(html)
        if state is None:
            raise ExtractionError(f"TikTok: 无法从页面提取数据: {url}")
        self.last_strategy = "browser"
        return state
