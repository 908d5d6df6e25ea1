"""
Error types raised by the feed synchronization package.
"""

from typing import Optional


class FeedSyncError(Exception):
    """Base class for all feed sync failures."""


class NetworkError(FeedSyncError):
    """Host unreachable, timed out, or answered with a non-success status."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"{url}: {message}")


class ArchiveError(FeedSyncError):
    """Archive body is corrupt or one of its members could not be read."""


class CacheIOError(FeedSyncError):
    """Local filesystem failure while writing a cache file or rule."""


class ConfigError(FeedSyncError):
    """Configuration file or override could not be parsed or validated."""
