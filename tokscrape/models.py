from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Optional

from .errors import MappingError


@dataclass(frozen=True)
class Video:
    id: str
    description: str = ""
    created: Optional[date] = None
    height: int = 0
    width: int = 0
    duration: int = 0
    ratio: str = ""
    shares: int = 0
    likes: int = 0
    comments: int = 0
    plays: int = 0
    download_url: str = ""
    no_watermark_url: str = ""
    cover: str = ""
    dynamic_cover: str = ""
    play_url: str = ""
    format: str = ""
    author: str = ""

    def __post_init__(self):
        if not self.id:
            raise MappingError("Video id 不能为空")

    @property
    def resolution(self) -> str:
        if self.width and self.height:
            return f"{self.width}x{self.height}"
        return self.ratio or "unknown"

    def to_dict(self) -> dict:
        d = asdict(self)
        d["created"] = self.created.isoformat() if self.created else None
        d["resolution"] = self.resolution
        return d


@dataclass(frozen=True)
class User:
    id: str
    unique_id: str = ""
    nickname: str = ""
    avatar: str = ""
    signature: str = ""
    created: Optional[date] = None
    verified: bool = False
    sec_uid: str = ""
    bio_link: Optional[str] = None
    private: bool = False
    under_18: bool = False
    followers: int = 0
    following: int = 0
    hearts: int = 0
    videos: int = 0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["created"] = self.created.isoformat() if self.created else None
        return d


@dataclass(frozen=True)
class Music:
    id: str = ""
    title: str = ""
    play_url: str = ""
    cover_large: str = ""
    cover_thumb: str = ""
    author: str = ""
    duration: int = 0
    original: bool = False
    album: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


OK = "ok"
SKIPPED = "skipped"
ERROR = "error"


@dataclass(frozen=True)
class ItemResult:
    video_id: str
    status: str  # ok / skipped / error
    path: Optional[str] = None
    reason: str = ""


@dataclass
class BatchReport:
    destination: str = ""
    results: list[ItemResult] = field(default_factory=list)

    @property
    def downloaded(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == OK]

    @property
    def skipped(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == SKIPPED]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == ERROR]

    @property
    def ok(self) -> bool:
        """True when every item was written."""
        return len(self.downloaded) == len(self.results)

    def to_dict(self) -> dict:
        return asdict(self)
