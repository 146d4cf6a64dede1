from .config import Settings, load_cookie_file
from .errors import (
    ExtractionError,
    MappingError,
    NotFoundError,
    PaginationLimitError,
    ParseError,
    ResolutionError,
    ScraperError,
    ValidationError,
)
from .models import BatchReport, ItemResult, Music, User, Video
from .scraper import TTScraper

__version__ = "1.0.0"

__all__ = [
    "TTScraper",
    "Settings",
    "load_cookie_file",
    "Video",
    "User",
    "Music",
    "BatchReport",
    "ItemResult",
    "ScraperError",
    "ValidationError",
    "ExtractionError",
    "ParseError",
    "NotFoundError",
    "MappingError",
    "ResolutionError",
    "PaginationLimitError",
]
