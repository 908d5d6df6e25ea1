"""
Feed synchronization

Pulls malicious-hash lists and YARA rule bundles from external feeds and
persists them as the scanner's local caches.
"""

from .sources import FeedSource, FeedCategory, ContentKind, BUILTIN_SOURCES, sources_for
from .archive import iter_members, read_lines, flatten_name
from .store import persist, write_rule, cache_stats
from .fetcher import FeedFetcher, classify, extract_rules
from .aggregator import aggregate

__all__ = [
    'FeedSource',
    'FeedCategory',
    'ContentKind',
    'BUILTIN_SOURCES',
    'sources_for',
    'iter_members',
    'read_lines',
    'flatten_name',
    'persist',
    'write_rule',
    'cache_stats',
    'FeedFetcher',
    'classify',
    'extract_rules',
    'aggregate',
]
