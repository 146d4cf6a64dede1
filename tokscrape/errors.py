class ScraperError(Exception):
    """Base class for every error raised by tokscrape."""


class ValidationError(ScraperError, ValueError):
    """Missing or empty caller input (url, username, tag, video id)."""


class ExtractionError(ScraperError):
    """No usable embedded state after both fetch strategies."""


class ParseError(ExtractionError):
    """The embedded state marker is absent from the document."""


class NotFoundError(ScraperError):
    """Page failed to load, or the requested entity is not in the state."""


class MappingError(ScraperError):
    """A structurally required field is missing from a payload."""


class ResolutionError(ScraperError):
    """No unwatermarked play URL could be resolved for a video."""


class PaginationLimitError(ScraperError):
    """Listing still reported more pages when a paging guard was hit."""

    def __init__(self, message: str, pages: int = 0, items: int = 0):
        super().__init__(message)
        self.pages = pages
        self.items = items


__all__ = [
    "ScraperError",
    "ValidationError",
    "ExtractionError",
    "ParseError",
    "NotFoundError",
    "MappingError",
    "ResolutionError",
    "PaginationLimitError",
]
