"""
Feed Source Registry

Descriptors for the upstream hash lists and rule bundles. The built-in
registry mirrors the public feeds the scanner has always relied on; callers
may pass their own list (configuration file, tests) instead.
"""

import logging
from enum import Enum
from typing import Any, Iterable, List
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, model_validator

logger = logging.getLogger(__name__)


class FeedCategory(Enum):
    """Which cache a feed refreshes."""
    BASELINE = "baseline"
    VOLATILE = "volatile"
    RULE_BUNDLE = "rule-bundle"


class ContentKind(Enum):
    """How a feed body is parsed. AUTO defers to the response Content-Type."""
    AUTO = "auto"
    LINE_TEXT = "line-text"
    ARCHIVE = "archive"


class FeedSource(BaseModel):
    """One upstream feed URL."""
    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    category: FeedCategory
    kind: ContentKind = ContentKind.AUTO

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        # host + path when no explicit name is configured
        if isinstance(data, dict) and not data.get("name") and data.get("url"):
            parsed = urlparse(str(data["url"]))
            data = dict(data, name=f"{parsed.netloc}{parsed.path}".rstrip("/"))
        return data

    def __str__(self) -> str:
        return self.name


def _source(url: str, category: FeedCategory, kind: ContentKind = ContentKind.AUTO) -> FeedSource:
    return FeedSource(url=url, category=category, kind=kind)


BUILTIN_SOURCES: List[FeedSource] = [
    # MalwareBazaar full exports (large, slow-changing)
    _source("https://bazaar.abuse.ch/export/txt/sha256/full/", FeedCategory.BASELINE),
    _source("https://bazaar.abuse.ch/export/txt/md5/full/", FeedCategory.BASELINE),
    _source("https://bazaar.abuse.ch/export/txt/sha1/full/", FeedCategory.BASELINE),

    # Frequently refreshed lists
    _source(
        "https://raw.githubusercontent.com/romainmarcoux/malicious-hash/refs/heads/main/full-hash-md5-aa.txt",
        FeedCategory.VOLATILE,
    ),
    _source(
        "https://raw.githubusercontent.com/romainmarcoux/malicious-hash/refs/heads/main/full-hash-sha1-aa.txt",
        FeedCategory.VOLATILE,
    ),
    _source(
        "https://raw.githubusercontent.com/romainmarcoux/malicious-hash/refs/heads/main/full-hash-sha256-aa.txt",
        FeedCategory.VOLATILE,
    ),
    _source("https://bazaar.abuse.ch/export/txt/sha256/recent/", FeedCategory.VOLATILE),
    _source("https://bazaar.abuse.ch/export/txt/md5/recent/", FeedCategory.VOLATILE),
    _source("https://bazaar.abuse.ch/export/txt/sha1/recent/", FeedCategory.VOLATILE),

    # YARA Forge rule bundle
    _source(
        "https://github.com/YARAHQ/yara-forge/releases/latest/download/yara-forge-rules-full.zip",
        FeedCategory.RULE_BUNDLE,
        ContentKind.ARCHIVE,
    ),
]


def sources_for(sources: Iterable[FeedSource], category: FeedCategory) -> List[FeedSource]:
    """
    Select the sources of one category, keeping configured order.
    
    Args:
        sources: Configured feed sources
        category: Category to select
        
    Returns:
        Sources belonging to category
    """
    selected = [source for source in sources if source.category == category]
    logger.debug(f"{len(selected)} {category.value} sources configured")
    return selected
