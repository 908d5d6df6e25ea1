"""
CheckSum Sentinel Feed Sync

Keeps the local malicious-hash lists and YARA rule directory used by the
file scanner in step with their upstream threat intelligence feeds.
"""

__version__ = "0.1.0"
__author__ = "CheckSum Sentinel Project"

from checksum_sentinel.config import get_config
from checksum_sentinel.feeds.service import FeedSyncService, SyncReport, run_sync
from checksum_sentinel.logging_conf import setup_logging

__all__ = ["get_config", "FeedSyncService", "SyncReport", "run_sync", "setup_logging"]
