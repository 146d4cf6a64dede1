import logging
import time
from typing import AsyncIterator

import httpx

from .config import Settings
from .errors import ExtractionError, PaginationLimitError
from .http import API_ENDPOINTS, PARSE_EXCEPTIONS, _api_headers

logger = logging.getLogger("tokscrape.paging")

AID = "1988"


class PaginatedCollector:
    """Follow the post listing cursor for one account until it runs out."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings = None):
        self.client = client
        self.settings = settings or Settings()

    async def fetch_page(self, sec_uid: str, cursor: str = "") -> dict:
        params = {
            "aid": AID,
            "count": str(self.settings.page_size),
            "secUid": sec_uid,
            "cursor": cursor,
        }
        resp = await self.client.get(
            API_ENDPOINTS["user_items"], params=params, headers=_api_headers(self.settings),
        )
        try:
            data = resp.json()
        except PARSE_EXCEPTIONS as e:
            raise ExtractionError(f"作品列表返回非 JSON (HTTP {resp.status_code}): {e}") from e
        if not isinstance(data, dict):
            raise ExtractionError("作品列表数据格式异常")
        return data

    async def collect_all(self, sec_uid: str) -> AsyncIterator[dict]:
        """Yield every raw item of the listing, page by page.

        Stops when the server reports ``hasMore`` false. Raises
        PaginationLimitError if ``max_pages`` calls or ``max_seconds`` pass
        while the server still reports more pages.
        """
        max_pages = self.settings.max_pages
        max_seconds = self.settings.max_seconds
        started = time.monotonic()
        cursor = ""
        pages = 0
        total = 0

        while True:
            data = await self.fetch_page(sec_uid, cursor)
            pages += 1
            items = data.get("itemList") or []
            has_more = bool(data.get("hasMore"))
            logger.debug(f"page {pages}: {len(items)} items, hasMore={has_more}")

            for item in items:
                total += 1
                yield item

            if not has_more:
                break

            cursor = str(data.get("cursor") or "")
            if max_pages is not None and pages >= max_pages:
                raise PaginationLimitError(
                    f"作品列表超过 {max_pages} 页仍未结束", pages=pages, items=total)
            if max_seconds is not None and time.monotonic() - started >= max_seconds:
                raise PaginationLimitError(
                    f"作品列表超过 {max_seconds}s 仍未结束", pages=pages, items=total)

        logger.info(f"Collected {total} items in {pages} pages for {sec_uid[:12]}...")
