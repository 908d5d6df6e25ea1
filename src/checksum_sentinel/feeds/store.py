"""
Cache Store

Writes hash sets and rule files where the scanner expects them. Hash
files are replaced through a temporary file and os.replace so readers
see either the previous or the new list, never a partial one.
"""

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List

from checksum_sentinel.errors import CacheIOError

logger = logging.getLogger(__name__)

COMMENT_MARKER = "#"


def normalize(hashes: Iterable[str]) -> List[str]:
    """Drop records containing the comment marker and sort the rest."""
    return sorted(h for h in set(hashes) if h and COMMENT_MARKER not in h)


def persist(hashes: Iterable[str], path: Path) -> int:
    """
    Replace a hash list file with the given records.
    
    Args:
        hashes: Records to write
        path: Target cache file
        
    Returns:
        Number of records written
        
    Raises:
        CacheIOError: On any filesystem failure; the target is left untouched
    """
    path = Path(path)
    records = normalize(hashes)
    tmp_name = None

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        os.fchmod(fd, 0o644)
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            for record in records:
                f.write(record)
                f.write("\n")
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise CacheIOError(f"Failed to write {path}: {e}") from e

    logger.info(f"✓ Wrote {len(records)} records to {path}")
    return len(records)


def write_rule(rule_dir: Path, basename: str, content: bytes) -> Path:
    """
    Write one rule file into the rule directory, overwriting any previous
    file of the same name.
    
    Raises:
        CacheIOError: If the directory or file cannot be written
    """
    dest = Path(rule_dir) / basename
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with open(dest, "wb") as f:
            f.write(content)
    except OSError as e:
        raise CacheIOError(f"Failed to write rule {dest}: {e}") from e

    logger.debug(f"Wrote rule file {dest}")
    return dest


def cache_stats(baseline: Path, volatile: Path, rule_dir: Path) -> Dict[str, Dict[str, Any]]:
    """
    Describe the current on-disk caches.
    
    Returns:
        Dict keyed by cache name with exists/records (or files)/modified
    """
    stats = {}

    for name, path in (("baseline", Path(baseline)), ("volatile", Path(volatile))):
        entry: Dict[str, Any] = {"path": str(path), "exists": path.is_file(), "records": 0, "modified": None}
        if entry["exists"]:
            with open(path, "r", encoding="utf-8") as f:
                entry["records"] = sum(1 for _ in f)
            entry["modified"] = datetime.fromtimestamp(path.stat().st_mtime)
        stats[name] = entry

    rule_dir = Path(rule_dir)
    rules: Dict[str, Any] = {"path": str(rule_dir), "exists": rule_dir.is_dir(), "files": 0, "modified": None}
    if rules["exists"]:
        rules["files"] = sum(1 for p in rule_dir.iterdir() if p.is_file())
        rules["modified"] = datetime.fromtimestamp(rule_dir.stat().st_mtime)
    stats["rules"] = rules

    return stats
