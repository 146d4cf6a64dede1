import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import AsyncIterator, Iterable, Optional

import httpx

from .browser import BrowserFetcher
from .config import Settings
from .download import BatchDownloader, DownloadResolver
from .errors import MappingError, NotFoundError, ValidationError
from .http import API_ENDPOINTS, PageFetcher, make_client
from .mapper import (
    music_from_state,
    user_from_state,
    video_from_item,
    video_from_state,
    videos_from_hashtag_state,
)
from .models import BatchReport, Music, User, Video
from .paging import PaginatedCollector
from .state import FetchOrchestrator

logger = logging.getLogger("tokscrape")


def _require(value: str, what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{what} 不能为空")
    return value.strip()


class TTScraper:
    """TikTok scraper: videos, users, music, hashtags and bulk downloads.

    Usage::

        async with TTScraper(cookies="msToken=...") as tt:
            video = await tt.video("https://www.tiktok.com/@user/video/123")
            report = await tt.download_all_from_user("user", unwatermarked=True)

    Components can be swapped for testing by passing ``client``,
    ``browser_fetcher`` or ``orchestrator``.
    """

    def __init__(self, cookies: Optional[str] = None, settings: Settings = None,
                 client: httpx.AsyncClient = None, browser_fetcher=None,
                 orchestrator: FetchOrchestrator = None):
        settings = settings or Settings()
        if cookies is not None:
            settings = settings.with_overrides(cookies=cookies)
        self.settings = settings
        self._owns_client = client is None
        self.client = client or make_client(settings)
        self.orchestrator = orchestrator or FetchOrchestrator(
            PageFetcher(self.client),
            browser_fetcher or BrowserFetcher(settings),
        )
        self.collector = PaginatedCollector(self.client, settings)
        self.resolver = DownloadResolver(self.client, video_lookup=self.video)
        self.downloader = BatchDownloader(self.client, self.resolver, settings)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def _bounded(self, coro, timeout: Optional[float]):
        if timeout is None:
            return await coro
        return await asyncio.wait_for(coro, timeout)

    # ── single entities ───────────────────────────────────

    async def video(self, url: str, no_watermark: bool = False,
                    timeout: Optional[float] = None) -> Video:
        url = _require(url, "A video URL")
        return await self._bounded(self._video(url, no_watermark), timeout)

    async def _video(self, url: str, no_watermark: bool) -> Video:
        video = video_from_state(await self.orchestrator.fetch(url))
        if not no_watermark:
            return video
        nwm = await self.resolver.resolve_no_watermark(video.id)
        return replace(video, no_watermark_url=nwm, download_url=nwm, play_url=nwm)

    async def user(self, username: str, timeout: Optional[float] = None) -> User:
        username = _require(username, "username").lstrip("@")
        url = API_ENDPOINTS["user_page"].format(username=username)
        state = await self._bounded(self.orchestrator.fetch(url), timeout)
        return user_from_state(state, username)

    async def music(self, url: str, timeout: Optional[float] = None) -> Music:
        url = _require(url, "link")
        state = await self._bounded(self.orchestrator.fetch(url), timeout)
        return music_from_state(state)

    async def hashtag(self, tag: str, timeout: Optional[float] = None) -> list[Video]:
        tag = _require(tag, "tag").lstrip("#")
        url = API_ENDPOINTS["tag_page"].format(tag=tag)
        state = await self._bounded(self.orchestrator.fetch(url), timeout)
        return videos_from_hashtag_state(state)

    async def no_watermark(self, id_or_url: str, timeout: Optional[float] = None) -> str:
        return await self._bounded(self.resolver.resolve_no_watermark(id_or_url), timeout)

    # ── collections ───────────────────────────────────────

    async def iter_user_videos(self, username: str) -> AsyncIterator[Video]:
        user = await self.user(username)
        if not user.sec_uid:
            raise NotFoundError(f"Could not find user secUid: {username}")
        async for item in self.collector.collect_all(user.sec_uid):
            try:
                yield video_from_item(item)
            except MappingError as e:
                logger.warning(f"跳过作品: {e}")

    async def user_videos(self, username: str) -> list[Video]:
        return [v async for v in self.iter_user_videos(username)]

    # ── downloads ─────────────────────────────────────────

    async def download_videos(self, videos: Iterable[Video], path,
                              unwatermarked: bool = False) -> BatchReport:
        return await self.downloader.download_all(videos, path, unwatermarked)

    async def download_all_from_user(self, username: str, path=None,
                                     unwatermarked: bool = False) -> BatchReport:
        username = _require(username, "username").lstrip("@")
        videos = await self.user_videos(username)
        if not videos:
            raise NotFoundError(
                f"No videos were found for {username}. "
                "Either the videos are private or the user has no videos"
            )
        return await self.download_videos(videos, path or Path.cwd() / username, unwatermarked)
