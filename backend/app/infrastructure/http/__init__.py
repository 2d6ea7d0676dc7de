from .content_fetcher import HttpContentFetcher

__all__ = ["HttpContentFetcher"]
