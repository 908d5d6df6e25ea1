"""
Feed Fetcher

Retrieves a single feed over HTTP and turns its body into a set of raw
lines. Bodies are either line-delimited text or a ZIP archive of such text;
rule bundles are ZIP archives whose rule members are written to disk.
"""

import logging
from pathlib import Path
from typing import List, Optional, Set

import httpx

from checksum_sentinel.errors import FeedSyncError, NetworkError
from checksum_sentinel.feeds.archive import flatten_name, iter_members, read_lines, read_member, split_text
from checksum_sentinel.feeds.sources import ContentKind, FeedSource
from checksum_sentinel.feeds.store import write_rule

logger = logging.getLogger(__name__)

ARCHIVE_CONTENT_TYPES = (
    "application/zip",
    "application/x-zip-compressed",
)


def classify(source: FeedSource, content_type: Optional[str]) -> ContentKind:
    """
    Decide how to parse a response body.
    
    An explicit hint on the source wins; otherwise the declared
    Content-Type selects ARCHIVE for ZIP types and LINE_TEXT for
    everything else, including a missing header.
    """
    if source.kind != ContentKind.AUTO:
        return source.kind

    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if media_type in ARCHIVE_CONTENT_TYPES:
        return ContentKind.ARCHIVE
    return ContentKind.LINE_TEXT


def parse_lines(text: str) -> Set[str]:
    """Split text into trimmed lines, dropping empty ones. Same rule as archive members."""
    return split_text(text)


def parse_archive(data: bytes) -> Set[str]:
    """Union of the lines of every archive member."""
    hashes: Set[str] = set()
    for name, member in iter_members(data):
        read_lines(member, hashes)
        logger.debug(f"Read member {name} ({len(hashes)} lines so far)")
    return hashes


def extract_rules(data: bytes, rule_dir: Path, extension: str = ".yar") -> List[str]:
    """
    Write every rule member of an archive into a flat rule directory.
    
    Directory prefixes are stripped, so members sharing a basename
    overwrite each other in archive order. Members without the rule
    extension are ignored.
    
    Args:
        data: ZIP archive bytes
        rule_dir: Destination directory
        extension: Rule file extension to keep
        
    Returns:
        Basenames written, in extraction order
        
    Raises:
        ArchiveError: If the archive or a member is unreadable
        CacheIOError: If a rule file cannot be written
    """
    written = []
    for name, member in iter_members(data):
        if not name.endswith(extension):
            continue
        basename = flatten_name(name)
        write_rule(rule_dir, basename, read_member(member, name))
        written.append(basename)
    return written


class FeedFetcher:
    """
    Fetches feeds through a shared async HTTP client.
    
    The client is owned by the caller and reused across every fetch in a
    sync so connections are pooled. Each fetch builds its own result set.
    """
    
    def __init__(self, client: httpx.AsyncClient):
        """
        Initialize feed fetcher.
        
        Args:
            client: Open httpx.AsyncClient shared by all fetches
        """
        self.client = client
    
    async def _get(self, source: FeedSource) -> httpx.Response:
        try:
            response = await self.client.get(source.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                source.url,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(source.url, str(e) or type(e).__name__) from e
        return response
    
    async def download(self, source: FeedSource) -> bytes:
        """Return the raw body of a feed."""
        response = await self._get(source)
        return response.content
    
    async def fetch(self, source: FeedSource) -> Set[str]:
        """
        Fetch one hash feed.
        
        Args:
            source: Feed to fetch
            
        Returns:
            Set of trimmed, non-empty lines from the feed
            
        Raises:
            NetworkError: On transport failure or non-success status
            ArchiveError: If an archive body cannot be read
        """
        logger.info(f"Fetching feed: {source.name}")
        try:
            response = await self._get(source)
            kind = classify(source, response.headers.get("content-type"))
            if kind == ContentKind.ARCHIVE:
                hashes = parse_archive(response.content)
            else:
                hashes = parse_lines(response.text)
        except FeedSyncError as e:
            logger.error(f"Failed to fetch {source.name}: {e}")
            raise
        
        logger.info(f"✓ Fetched {len(hashes)} records from {source.name} ({kind.value})")
        return hashes
    
    async def fetch_rules(self, source: FeedSource, rule_dir: Path, extension: str = ".yar") -> List[str]:
        """
        Download a rule bundle and extract it into rule_dir.
        
        Files written before a failure stay on disk.
        
        Returns:
            Basenames written, in extraction order
        """
        logger.info(f"Fetching rule bundle: {source.name}")
        data = await self.download(source)
        return self.extract_bundle(source, data, rule_dir, extension)
    
    def extract_bundle(self, source: FeedSource, data: bytes, rule_dir: Path, extension: str = ".yar") -> List[str]:
        """
        Extract an already downloaded rule bundle into rule_dir.
        
        Used directly when several bundles are downloaded together and
        extracted one at a time in source order.
        """
        try:
            written = extract_rules(data, rule_dir, extension)
        except FeedSyncError as e:
            logger.error(f"Failed to extract rule bundle {source.name}: {e}")
            raise
        logger.info(f"✓ Extracted {len(written)} rule files from {source.name}")
        return written
