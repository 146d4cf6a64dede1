import json
import logging

import httpx

from .config import DESKTOP_UA, TIMEOUT, Settings

logger = logging.getLogger("tokscrape.http")

API_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:106.0) "
    "Gecko/20100101 Firefox/106.0"
)

API_ENDPOINTS = {
    "video_page": "https://www.tiktok.com/@{author}/video/{video_id}",
    "user_page": "https://www.tiktok.com/@{username}",
    "tag_page": "https://www.tiktok.com/tag/{tag}",
    "user_items": "https://m.tiktok.com/api/post/item_list/",
    "aweme_detail": "https://api2.musical.ly/aweme/v1/aweme/detail/",
}

NETWORK_EXCEPTIONS = (
    httpx.HTTPError,
)

PARSE_EXCEPTIONS = (
    json.JSONDecodeError,
    ValueError,
    KeyError,
    IndexError,
    TypeError,
)


def _headers(settings: Settings = None) -> dict[str, str]:
    settings = settings or Settings()
    return {
        "User-Agent": settings.user_agent or DESKTOP_UA,
        "Accept": "application/json, text/plain, */*",
        "Accept-Encoding": "gzip, deflate, br",
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "Cookie": settings.cookies or "",
    }


def _api_headers(settings: Settings = None) -> dict[str, str]:
    headers = _headers(settings)
    headers["User-Agent"] = API_UA
    headers["Accept"] = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
    return headers


def make_client(settings: Settings = None, **kwargs) -> httpx.AsyncClient:
    settings = settings or Settings()
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=settings.timeout or TIMEOUT,
        headers=_headers(settings),
        **kwargs,
    )


class PageFetcher:
    """Plain GET of a page, returning the body text."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fetch(self, url: str) -> str:
        resp = await self.client.get(url)
        # Anti-bot placeholder pages often come back as 403/429; the caller
        # judges the body, so the status is only logged.
        if resp.status_code >= 400:
            logger.debug(f"GET {url} -> {resp.status_code}")
        return resp.text


__all__ = [
    "API_UA",
    "API_ENDPOINTS",
    "NETWORK_EXCEPTIONS",
    "PARSE_EXCEPTIONS",
    "PageFetcher",
    "_headers",
    "_api_headers",
    "make_client",
]
