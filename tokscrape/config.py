import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

logger = logging.getLogger("tokscrape.config")

DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

TIMEOUT = float(os.getenv("TOKSCRAPE_TIMEOUT", "15.0"))
MAX_PAGES = 200
PAGE_SIZE = 35


@dataclass(frozen=True)
class Settings:
    cookies: str = ""
    timeout: float = TIMEOUT
    user_agent: str = DESKTOP_UA
    max_pages: Optional[int] = MAX_PAGES
    max_seconds: Optional[float] = None
    page_size: int = PAGE_SIZE
    headless: bool = True
    concurrency: int = 1

    def __post_init__(self):
        # None is accepted for cookies so callers can pass an unset value straight through.
        if self.cookies is None:
            object.__setattr__(self, "cookies", "")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive: {self.timeout}")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError(f"max_pages must be >= 1: {self.max_pages}")
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1: {self.concurrency}")

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with the non-None keyword values applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from TOKSCRAPE_* environment variables.

        - TOKSCRAPE_COOKIE: raw Cookie header
        - TOKSCRAPE_COOKIE_FILE: path handled by :func:`load_cookie_file`
        - TOKSCRAPE_TIMEOUT: seconds per request
        - TOKSCRAPE_MAX_PAGES: listing page guard
        """
        cookies = os.getenv("TOKSCRAPE_COOKIE", "")
        cookie_file = os.getenv("TOKSCRAPE_COOKIE_FILE")
        if not cookies and cookie_file:
            cookies = load_cookie_file(cookie_file)
        values = {
            "cookies": cookies,
            "timeout": float(os.getenv("TOKSCRAPE_TIMEOUT", str(TIMEOUT))),
        }
        max_pages = os.getenv("TOKSCRAPE_MAX_PAGES")
        if max_pages:
            values["max_pages"] = int(max_pages)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _cookie_header(cookies: dict) -> str:
    return "; ".join(f"{k}={v}" for k, v in cookies.items())


def load_cookie_file(path) -> str:
    """Read a cookie header from disk.

    Supports three formats:
    - a raw header line: ``a=1; b=2``
    - simple JSON: ``{"a": "1", "b": "2"}``
    - cookie store JSON: ``{"tiktok": {"cookies": {"a": "1"}, "updated_at": "..."}}``
    """
    p = Path(path).expanduser()
    try:
        text = p.read_text(encoding="utf-8").strip()
    except OSError as e:
        logger.warning(f"Failed to load cookies from {p}: {e}")
        return ""
    if not text.startswith("{"):
        return text
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid cookie JSON in {p}: {e}")
        return ""
    entry = data.get("tiktok", data)
    if isinstance(entry, dict) and isinstance(entry.get("cookies"), dict):
        entry = entry["cookies"]
    if not isinstance(entry, dict):
        return ""
    return _cookie_header({k: v for k, v in entry.items() if isinstance(v, (str, int))})
