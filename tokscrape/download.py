import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional

import httpx

from .config import Settings
from .errors import ResolutionError, ScraperError, ValidationError
from .http import API_ENDPOINTS, NETWORK_EXCEPTIONS, PARSE_EXCEPTIONS
from .mapper import _dig
from .models import ERROR, OK, SKIPPED, BatchReport, ItemResult, Video

logger = logging.getLogger("tokscrape.download")

CHUNK_SIZE = 64 * 1024

# httpx.InvalidURL and httpx.StreamError do not derive from httpx.HTTPError
DOWNLOAD_EXCEPTIONS = (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, OSError)


class DownloadResolver:
    """Resolve the unwatermarked play URL of a video through the detail API.

    ``video_lookup`` turns a page URL into a Video; it is only called when the
    input is a URL rather than a bare identifier.
    """

    def __init__(self, client: httpx.AsyncClient,
                 video_lookup: Optional[Callable[[str], Awaitable[Video]]] = None):
        self.client = client
        self.video_lookup = video_lookup

    async def _video_id(self, id_or_url: str) -> str:
        if not id_or_url.startswith(("http://", "https://")):
            return id_or_url
        if self.video_lookup is None:
            raise ResolutionError(f"无法从链接获取视频 ID: {id_or_url}")
        video = await self.video_lookup(id_or_url)
        if not video.id:
            raise ResolutionError(f"Could not extract the video id from {id_or_url}")
        return video.id

    async def resolve_no_watermark(self, id_or_url: str) -> str:
        if not isinstance(id_or_url, str) or not id_or_url.strip():
            raise ValidationError("video id / url 不能为空")
        video_id = await self._video_id(id_or_url.strip())

        try:
            resp = await self.client.get(API_ENDPOINTS["aweme_detail"], params={"aweme_id": video_id})
            data = resp.json()
        except NETWORK_EXCEPTIONS + PARSE_EXCEPTIONS as e:
            raise ResolutionError(f"无水印地址获取失败 {video_id}: {e}") from e

        urls = _dig(data, "aweme_detail", "video", "play_addr", "url_list", default=[])
        if not isinstance(urls, list) or not urls or not urls[0]:
            raise ResolutionError(f"无水印地址不可用 {video_id}")
        return urls[0]


def prepare_destination(path) -> Path:
    """Make sure ``path`` is a directory, replacing a stray file at that path."""
    p = Path(path)
    if p.exists() and not p.is_dir():
        logger.warning(f"{p} 已存在但不是目录，将删除后重建")
        p.unlink()
    p.mkdir(parents=True, exist_ok=True)
    return p


def output_path(destination, video: Video) -> Path:
    return Path(destination) / f"{video.id}_{video.resolution}.{video.format or 'mp4'}"


class BatchDownloader:
    def __init__(self, client: httpx.AsyncClient, resolver: DownloadResolver = None,
                 settings: Settings = None):
        self.client = client
        self.resolver = resolver or DownloadResolver(client)
        self.settings = settings or Settings()

    async def _stream_to(self, url: str, fpath: Path) -> int:
        size = 0
        async with self.client.stream("GET", url) as resp:
            resp.raise_for_status()
            with open(fpath, "wb") as f:
                async for chunk in resp.aiter_bytes(CHUNK_SIZE):
                    f.write(chunk)
                    size += len(chunk)
        return size

    async def download_one(self, video: Video, destination, unwatermarked: bool = False) -> ItemResult:
        if unwatermarked:
            try:
                url = await self.resolver.resolve_no_watermark(video.id)
            except ResolutionError as e:
                logger.warning(f"Could not fetch {video.description or video.id} with no watermark: {e}")
                return ItemResult(video.id, SKIPPED, reason=str(e))
            except (ScraperError,) + DOWNLOAD_EXCEPTIONS as e:
                logger.warning(f"无水印地址解析异常 id={video.id}: {e}")
                return ItemResult(video.id, ERROR, reason=str(e))
        else:
            url = video.download_url

        if not url:
            logger.warning(f"{video.id} 没有可下载地址，跳过")
            return ItemResult(video.id, SKIPPED, reason="no download url")

        fpath = output_path(destination, video)
        # a failed attempt must not clobber an earlier good file
        part = fpath.with_name(fpath.name + ".part")
        try:
            size = await self._stream_to(url, part)
            os.replace(part, fpath)
        except DOWNLOAD_EXCEPTIONS as e:
            logger.warning(f"下载失败 id={video.id} file={fpath.name}: {e}")
            if part.exists():
                os.remove(part)
            return ItemResult(video.id, ERROR, reason=str(e))
        logger.info(f"✓ {fpath.name} ({size/1024/1024:.1f} MB)")
        return ItemResult(video.id, OK, path=str(fpath))

    async def download_all(self, videos: Iterable[Video], destination,
                           unwatermarked: bool = False) -> BatchReport:
        videos = list(videos)
        dest = prepare_destination(destination)
        total = len(videos)
        sem = asyncio.Semaphore(self.settings.concurrency)

        async def run(i: int, video: Video) -> ItemResult:
            async with sem:
                logger.info(f"[{i}/{total}] Downloading video: {video.description or video.id}")
                return await self.download_one(video, dest, unwatermarked)

        results = await asyncio.gather(*(run(i, v) for i, v in enumerate(videos, 1)))
        report = BatchReport(destination=str(dest), results=list(results))
        logger.info(
            f"批量下载完成: 成功 {len(report.downloaded)}/{total}, "
            f"跳过 {len(report.skipped)}, 失败 {len(report.failed)}"
        )
        return report
