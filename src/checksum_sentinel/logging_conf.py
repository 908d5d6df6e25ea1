"""
Logging setup for processes embedding the feed sync.
"""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging.
    
    Args:
        level: Level name (default from config.log_level)
    """
    if level is None:
        from checksum_sentinel.config import get_config
        level = get_config().log_level

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
