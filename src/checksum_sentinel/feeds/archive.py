"""
ZIP archive helpers shared by hash-feed and rule-bundle parsing.
"""

import io
import logging
import lzma
import zipfile
import zlib
from typing import BinaryIO, Iterable, Iterator, Set, Tuple

from checksum_sentinel.errors import ArchiveError

logger = logging.getLogger(__name__)


def iter_members(data: bytes) -> Iterator[Tuple[str, BinaryIO]]:
    """
    Yield (name, stream) for every file member, in archive order.
    
    Directory entries are skipped. Each stream is closed once the caller
    advances to the next member.
    
    Raises:
        ArchiveError: If the archive or a member header is unreadable
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as e:
        raise ArchiveError(f"Unreadable archive: {e}") from e

    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            try:
                member = archive.open(info)
            except (zipfile.BadZipFile, NotImplementedError, RuntimeError) as e:
                raise ArchiveError(f"Cannot open member {info.filename}: {e}") from e
            with member:
                yield info.filename, member


# Decompression failures surface as these rather than BadZipFile
MEMBER_READ_ERRORS = (zipfile.BadZipFile, OSError, EOFError, ValueError, zlib.error, lzma.LZMAError)


def collect_lines(lines: Iterable[str], into: Set[str]) -> Set[str]:
    """Add trimmed, non-empty lines to a set."""
    for line in lines:
        line = line.strip()
        if line:
            into.add(line)
    return into


def split_text(text: str) -> Set[str]:
    """Split text on \\n, \\r or \\r\\n into trimmed, non-empty lines."""
    return collect_lines(io.StringIO(text, newline=None), set())


def read_lines(stream: BinaryIO, into: Set[str]) -> Set[str]:
    """
    Add the trimmed, non-empty lines of a binary stream to a set.
    
    Lines split the same way as split_text().
    
    Raises:
        ArchiveError: If reading the member fails (CRC mismatch, corrupt data)
    """
    try:
        text = io.TextIOWrapper(stream, encoding="utf-8", errors="replace", newline=None)
        collect_lines(text, into)
    except MEMBER_READ_ERRORS as e:
        raise ArchiveError(f"Failed to read archive member: {e}") from e
    return into


def read_member(stream: BinaryIO, name: str) -> bytes:
    """
    Read a whole member into memory.
    
    Raises:
        ArchiveError: If the member cannot be decompressed
    """
    try:
        return stream.read()
    except MEMBER_READ_ERRORS as e:
        raise ArchiveError(f"Failed to read archive member {name}: {e}") from e


def flatten_name(name: str) -> str:
    """Strip any directory prefix from an archive member name."""
    return name.replace("\\", "/").rsplit("/", 1)[-1]
