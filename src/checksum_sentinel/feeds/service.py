"""
Feed Sync Service

Decides which caches to refresh and in what order:

- baseline hashes: only when the cache file is missing or a refresh is forced
- volatile hashes: whenever requested
- rule bundle: whenever requested, independent of the hash caches

Baseline finishes before volatile starts. Each category fails on its own;
a failed category leaves its previous cache untouched.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import httpx

from checksum_sentinel.config import AppConfig, get_config
from checksum_sentinel.errors import FeedSyncError
from checksum_sentinel.feeds.aggregator import aggregate
from checksum_sentinel.feeds.fetcher import FeedFetcher
from checksum_sentinel.feeds.sources import FeedCategory, sources_for
from checksum_sentinel.feeds.store import cache_stats, persist

logger = logging.getLogger(__name__)


class SyncStatus(Enum):
    """Outcome of one category in a sync run."""
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"
    NOT_REQUESTED = "not_requested"


@dataclass
class CategoryResult:
    """Result of syncing one cache category."""
    category: FeedCategory
    status: SyncStatus = SyncStatus.NOT_REQUESTED
    records: int = 0
    files: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class SyncReport:
    """Per-category results of a sync run."""
    baseline: CategoryResult = field(default_factory=lambda: CategoryResult(FeedCategory.BASELINE))
    volatile: CategoryResult = field(default_factory=lambda: CategoryResult(FeedCategory.VOLATILE))
    rules: CategoryResult = field(default_factory=lambda: CategoryResult(FeedCategory.RULE_BUNDLE))

    @property
    def ok(self) -> bool:
        """True when no category failed."""
        return all(
            result.status != SyncStatus.FAILED
            for result in (self.baseline, self.volatile, self.rules)
        )


class FeedSyncService:
    """
    Refreshes the on-disk hash lists and rule directory.
    
    One HTTP client is opened per sync() call and shared by every fetch.
    """
    
    def __init__(
        self,
        config: Optional[AppConfig] = None,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None
    ):
        """
        Initialize feed sync service.
        
        Args:
            config: Configuration (default from get_config())
            client_factory: Builds the shared HTTP client (default from config.http)
        """
        self.config = config or get_config()
        self.client_factory = client_factory or self._default_client
        
        logger.info(
            f"Initialized FeedSyncService with {len(self.config.sources)} sources, "
            f"rule_dir={self.config.paths.rule_dir}"
        )
    
    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.http.timeout,
            headers={"User-Agent": self.config.http.user_agent},
            follow_redirects=True,
        )
    
    async def sync(
        self,
        force_baseline: bool = False,
        do_volatile: bool = True,
        do_rules: bool = False
    ) -> SyncReport:
        """
        Run one sync.
        
        Args:
            force_baseline: Refresh baseline hashes even if the cache exists
            do_volatile: Refresh volatile hashes
            do_rules: Refresh the rule directory
            
        Returns:
            SyncReport with one result per category
        """
        report = SyncReport()
        
        async with self.client_factory() as client:
            fetcher = FeedFetcher(client)
            
            baseline_path = Path(self.config.paths.baseline_hashes)
            if force_baseline or not baseline_path.exists():
                await self._sync_hashes(fetcher, report.baseline, baseline_path)
            else:
                logger.info(f"Baseline cache present at {baseline_path}, skipping")
                report.baseline.status = SyncStatus.SKIPPED
            
            if do_volatile:
                await self._sync_hashes(
                    fetcher, report.volatile, Path(self.config.paths.volatile_hashes)
                )
            
            if do_rules:
                await self._sync_rules(fetcher, report.rules)
        
        logger.info(
            f"Sync finished: baseline={report.baseline.status.value}, "
            f"volatile={report.volatile.status.value}, rules={report.rules.status.value}"
        )
        return report
    
    async def _sync_hashes(self, fetcher: FeedFetcher, result: CategoryResult, path: Path) -> None:
        """Aggregate one hash category and persist it; record failures in result."""
        sources = sources_for(self.config.sources, result.category)
        if not sources:
            logger.warning(f"No {result.category.value} sources configured, skipping")
            result.status = SyncStatus.SKIPPED
            return
        
        try:
            hashes = await aggregate(fetcher, sources)
            result.records = persist(hashes, path)
            result.status = SyncStatus.UPDATED
        except FeedSyncError as e:
            logger.error(f"{result.category.value} sync failed, keeping existing {path}: {e}")
            result.status = SyncStatus.FAILED
            result.errors.append(str(e))
    
    async def _sync_rules(self, fetcher: FeedFetcher, result: CategoryResult) -> None:
        """
        Download all rule bundles concurrently, then extract them one by one
        in configured order so later sources win basename collisions.
        """
        sources = sources_for(self.config.sources, FeedCategory.RULE_BUNDLE)
        if not sources:
            logger.warning("No rule-bundle sources configured, skipping")
            result.status = SyncStatus.SKIPPED
            return
        
        bodies = await asyncio.gather(
            *(fetcher.download(source) for source in sources),
            return_exceptions=True,
        )
        
        rule_dir = Path(self.config.paths.rule_dir)
        for source, body in zip(sources, bodies):
            try:
                if isinstance(body, BaseException):
                    raise body
                written = fetcher.extract_bundle(source, body, rule_dir, self.config.rules.extension)
                result.files += len(written)
            except FeedSyncError as e:
                logger.error(f"Rule bundle {source.name} failed: {e}")
                result.errors.append(f"{source.name}: {e}")
        
        result.status = SyncStatus.FAILED if result.errors else SyncStatus.UPDATED
    
    def status(self) -> dict:
        """Current state of the on-disk caches."""
        paths = self.config.paths
        return cache_stats(paths.baseline_hashes, paths.volatile_hashes, paths.rule_dir)


def run_sync(
    force_baseline: bool = False,
    do_volatile: bool = True,
    do_rules: bool = False,
    config: Optional[AppConfig] = None
) -> SyncReport:
    """Blocking wrapper around FeedSyncService.sync()."""
    service = FeedSyncService(config=config)
    return asyncio.run(service.sync(force_baseline, do_volatile, do_rules))
