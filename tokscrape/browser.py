import logging

from .config import Settings
from .errors import NotFoundError

logger = logging.getLogger("tokscrape.browser")

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


def _cookie_list(header: str) -> list[dict]:
    """Turn a Cookie header into playwright cookie dicts for .tiktok.com."""
    cookies = []
    for part in header.split(";"):
        name, sep, value = part.strip().partition("=")
        if not sep or not name:
            continue
        cookies.append({
            "name": name,
            "value": value,
            "domain": ".tiktok.com",
            "path": "/",
        })
    return cookies


class BrowserFetcher:
    """Render a page in a throwaway headless chromium and return its HTML.

    One browser is launched per call and always closed afterwards; nothing is
    pooled between calls.
    """

    def __init__(self, settings: Settings = None):
        self.settings = settings or Settings()

    async def render(self, url: str) -> str:
        from playwright.async_api import Error as PlaywrightError
        from playwright.async_api import async_playwright

        s = self.settings
        logger.info(f"Rendering with headless browser: {url}")
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=s.headless, args=LAUNCH_ARGS)
            try:
                ctx = await browser.new_context(user_agent=s.user_agent)
                if s.cookies:
                    await ctx.add_cookies(_cookie_list(s.cookies))
                page = await ctx.new_page()
                try:
                    resp = await page.goto(url, timeout=s.timeout * 1000,
                                           wait_until="domcontentloaded")
                except PlaywrightError as e:
                    raise NotFoundError(f"Could not load the desired page: {url} ({e})") from e
                if resp is None:
                    raise NotFoundError(f"Could not load the desired page: {url}")
                return await page.content()
            finally:
                await browser.close()
