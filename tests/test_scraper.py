import asyncio

import httpx
import pytest

from tokscrape import TTScraper
from tokscrape.errors import MappingError, NotFoundError, ResolutionError, ValidationError

VIDEO_URL = "https://www.tiktok.com/@traveldiaries/video/7158425371634535722"
VIDEO_PATH = "/@traveldiaries/video/7158425371634535722"
USER_PATH = "/@traveldiaries"
ITEMS_PATH = "/api/post/item_list/"
DETAIL_PATH = "/aweme/v1/aweme/detail/"


def html_route(html: str):
    return lambda request: httpx.Response(200, text=html)


def listing(pages):
    it = iter(pages)
    return lambda request: httpx.Response(200, json=next(it))


@pytest.fixture
def scraper(mock_client, fake_browser):
    def _make(routes, browser_html: str = ""):
        client, router = mock_client(routes)
        browser = fake_browser(html=browser_html)
        return TTScraper(client=client, browser_fetcher=browser), router, browser
    return _make


@pytest.mark.unit
class Describe_TTScraper_video:
    def test_given_video_url_should_return_video(self, scraper, make_page, video_state):
        """给定视频链接时，应返回 Video。"""
        tt, _, browser = scraper({VIDEO_PATH: html_route(make_page(video_state))})
        v = asyncio.run(tt.video(VIDEO_URL))
        assert v.id == "7158425371634535722"
        assert v.author == "Travel Diaries"
        assert browser.calls == []

    def test_given_blocked_page_should_use_browser(self, scraper, make_page, video_state):
        """普通请求被拦截时应改用浏览器。"""
        tt, _, browser = scraper({VIDEO_PATH: html_route("<html>captcha</html>")},
                                 browser_html=make_page(video_state))
        v = asyncio.run(tt.video(VIDEO_URL))
        assert v.id == "7158425371634535722"
        assert browser.calls == [VIDEO_URL]

    def test_with_no_watermark_should_fill_resolved_url(self, scraper, make_page, video_state, detail_response):
        routes = {
            VIDEO_PATH: html_route(make_page(video_state)),
            DETAIL_PATH: detail_response(["https://nwm/7158.mp4"]),
        }
        tt, router, _ = scraper(routes)
        v = asyncio.run(tt.video(VIDEO_URL, no_watermark=True))
        assert v.no_watermark_url == "https://nwm/7158.mp4"
        assert v.download_url == "https://nwm/7158.mp4"
        assert v.play_url == "https://nwm/7158.mp4"
        assert router.calls_to(DETAIL_PATH)[0].url.params["aweme_id"] == "7158425371634535722"

    def test_given_empty_url_should_raise_validation_error(self, scraper):
        """空链接应立即抛出 ValidationError，不发请求。"""
        tt, router, _ = scraper({})
        with pytest.raises(ValidationError):
            asyncio.run(tt.video(""))
        assert router.requests == []

    def test_given_page_without_video_should_raise_not_found(self, scraper, make_page):
        tt, _, _ = scraper({VIDEO_PATH: html_route(make_page({"ItemList": {"video": {"list": []}}}))})
        with pytest.raises(NotFoundError):
            asyncio.run(tt.video(VIDEO_URL))


@pytest.mark.unit
class Describe_TTScraper_user:
    def test_given_username_should_return_user(self, scraper, make_page, user_state):
        tt, router, _ = scraper({USER_PATH: html_route(make_page(user_state))})
        u = asyncio.run(tt.user("@traveldiaries"))
        assert u.sec_uid == "MS4wLjABAAAA-secret"
        assert router.requests[0].url.path == USER_PATH

    def test_given_empty_username_should_raise_validation_error(self, scraper):
        tt, _, _ = scraper({})
        with pytest.raises(ValidationError):
            asyncio.run(tt.user("   "))


@pytest.mark.unit
class Describe_TTScraper_user_videos:
    def test_should_collect_all_pages(self, scraper, make_page, user_state):
        """应翻完所有页并映射为 Video 列表。"""
        pages = [
            {"itemList": [{"video": {"id": "1"}, "author": "traveldiaries"},
                          {"video": {"id": "2"}}], "cursor": "c1", "hasMore": True},
            {"itemList": [{"video": {"id": "3"}}], "cursor": "c2", "hasMore": False},
        ]
        tt, router, _ = scraper({USER_PATH: html_route(make_page(user_state)), ITEMS_PATH: listing(pages)})
        videos = asyncio.run(tt.user_videos("traveldiaries"))
        assert [v.id for v in videos] == ["1", "2", "3"]
        assert videos[0].author == "traveldiaries"
        assert router.calls_to(ITEMS_PATH)[0].url.params["secUid"] == "MS4wLjABAAAA-secret"

    def test_should_skip_items_that_fail_mapping(self, scraper, make_page, user_state):
        pages = [{"itemList": [{"video": {}}, {"video": {"id": "2"}}], "cursor": "", "hasMore": False}]
        tt, _, _ = scraper({USER_PATH: html_route(make_page(user_state)), ITEMS_PATH: listing(pages)})
        assert [v.id for v in asyncio.run(tt.user_videos("traveldiaries"))] == ["2"]

    def test_given_user_without_sec_uid_should_raise_not_found(self, scraper, make_page):
        state = {"UserModule": {"users": {"ghost": {"id": "1"}}}}
        tt, _, _ = scraper({"/@ghost": html_route(make_page(state))})
        with pytest.raises(NotFoundError):
            asyncio.run(tt.user_videos("ghost"))


@pytest.mark.unit
class Describe_TTScraper_music_and_hashtag:
    def test_given_video_url_should_return_music(self, scraper, make_page, video_state):
        tt, _, _ = scraper({VIDEO_PATH: html_route(make_page(video_state))})
        m = asyncio.run(tt.music(VIDEO_URL))
        assert m.title == "original sound"

    def test_given_tag_should_return_videos(self, scraper, make_page, hashtag_state):
        tt, router, _ = scraper({"/tag/cats": html_route(make_page(hashtag_state))})
        videos = asyncio.run(tt.hashtag("#cats"))
        assert [v.id for v in videos] == ["101", "103"]


@pytest.mark.unit
class Describe_TTScraper_downloads:
    def test_no_watermark_by_url_should_look_up_video(self, scraper, make_page, video_state, detail_response):
        routes = {
            VIDEO_PATH: html_route(make_page(video_state)),
            DETAIL_PATH: detail_response(["https://nwm/a.mp4"]),
        }
        tt, _, _ = scraper(routes)
        assert asyncio.run(tt.no_watermark(VIDEO_URL)) == "https://nwm/a.mp4"

    def test_no_watermark_with_empty_list_should_raise(self, scraper, detail_response):
        tt, _, _ = scraper({DETAIL_PATH: detail_response([])})
        with pytest.raises(ResolutionError):
            asyncio.run(tt.no_watermark("123"))

    def test_download_all_from_user_should_write_files(self, scraper, make_page, user_state, tmp_path):
        """下载用户全部作品到指定目录。"""
        pages = [{"itemList": [
            {"video": {"id": "1", "width": 576, "height": 1024, "format": "mp4",
                       "downloadAddr": "https://cdn/1.mp4"}},
        ], "cursor": "", "hasMore": False}]
        media = lambda request: httpx.Response(200, content=b"video-bytes")
        tt, _, _ = scraper({USER_PATH: html_route(make_page(user_state)),
                            ITEMS_PATH: listing(pages), "/1.mp4": media})
        report = asyncio.run(tt.download_all_from_user("traveldiaries", path=tmp_path / "out"))
        assert report.ok
        assert (tmp_path / "out" / "1_576x1024.mp4").read_bytes() == b"video-bytes"

    def test_download_all_from_user_without_videos_should_raise(self, scraper, make_page, user_state, tmp_path):
        pages = [{"itemList": [], "cursor": "", "hasMore": False}]
        tt, _, _ = scraper({USER_PATH: html_route(make_page(user_state)), ITEMS_PATH: listing(pages)})
        with pytest.raises(NotFoundError):
            asyncio.run(tt.download_all_from_user("traveldiaries", path=tmp_path))


@pytest.mark.unit
class Describe_TTScraper_lifecycle:
    def test_should_close_owned_client(self):
        async def go():
            async with TTScraper(cookies="a=1") as tt:
                client = tt.client
                assert tt.settings.cookies == "a=1"
            return client

        assert asyncio.run(go()).is_closed

    def test_should_not_close_injected_client(self, mock_client):
        client, _ = mock_client()

        async def go():
            async with TTScraper(client=client):
                pass

        asyncio.run(go())
        assert not client.is_closed
