"""Page-fetch contract shared by the store and the pagination manager."""

from .page_fetcher import FetchPage, PageFetcher, PageResult, PaginationState, SequencePageSource

__all__ = ["FetchPage", "PageFetcher", "PageResult", "PaginationState", "SequencePageSource"]
