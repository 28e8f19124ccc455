"""Directory cache records of a fast-filesystem directory.

A directory cache block stores one variable-length record per directory
entry.  A record is laid out big-endian as::

    0   header key       (4 bytes)
    4   size             (4 bytes)
    8   protection bits  (4 bytes)
    12  unused           (4 bytes)
    16  days             (2 bytes)
    18  minutes          (2 bytes)
    20  ticks            (2 bytes)
    22  secondary type   (1 signed byte)
    23  name length      (1 byte)
    24  name, then comment length (1 byte), then comment

Records always start at an even offset, so an odd-length record is
followed by one padding byte.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

BLOCK_SIZE = 512
MAX_NAME_LEN = 30
MAX_COMMENT_LEN = 79
MIN_RECORD_LEN = 26
TICKS_PER_SECOND = 50

_FIXED = struct.Struct(">III4xHHHbB")
_ENCODING = "latin-1"


class CacheError(Exception):
    """Raised for malformed or unrepresentable directory cache records."""


@dataclass
class CacheEntry:
    """One directory cache record."""

    header: int
    name: str
    type: int
    size: int = 0
    protect: int = 0
    days: int = 0
    mins: int = 0
    ticks: int = 0
    comment: str = ""

    @property
    def hour(self) -> int:
        """Hour of the day of the entry's date."""
        return self.mins // 60

    @property
    def minute(self) -> int:
        """Minute within the hour of the entry's date."""
        return self.mins % 60

    @property
    def second(self) -> int:
        """Second within the minute of the entry's date."""
        return self.ticks // TICKS_PER_SECOND

    def _name_bytes(self) -> bytes:
        try:
            raw = self.name.encode(_ENCODING)
        except UnicodeEncodeError as exc:
            raise CacheError(f"name {self.name!r} cannot be stored") from exc
        if not 1 <= len(raw) <= MAX_NAME_LEN:
            raise CacheError(
                f"name length must be between 1 and {MAX_NAME_LEN}, got {len(raw)}"
            )
        return raw

    def _comment_bytes(self) -> bytes:
        try:
            raw = self.comment.encode(_ENCODING)
        except UnicodeEncodeError as exc:
            raise CacheError(f"comment {self.comment!r} cannot be stored") from exc
        if len(raw) > MAX_COMMENT_LEN:
            raise CacheError(
                f"comment length must be at most {MAX_COMMENT_LEN}, got {len(raw)}"
            )
        return raw

    def record_length(self) -> int:
        """Return the number of bytes the record occupies, padding included."""
        length = 25 + len(self._name_bytes()) + len(self._comment_bytes())
        return length + (length % 2)

    def encode(self) -> bytes:
        """Encode the record, padded to an even length."""
        name = self._name_bytes()
        comment = self._comment_bytes()
        try:
            fixed = _FIXED.pack(
                self.header,
                self.size,
                self.protect,
                self.days,
                self.mins,
                self.ticks,
                self.type,
                len(name),
            )
        except struct.error as exc:
            raise CacheError(f"field out of range: {exc}") from exc
        record = fixed + name + bytes([len(comment)]) + comment
        if len(record) % 2:
            record += b"\x00"
        return record


def decode_cache_entry(records: bytes, offset: int = 0) -> tuple[CacheEntry, int]:
    """Decode the record at ``offset`` of a records area.

    Returns the entry and the (even) offset of the following record.
    """
    if offset < 0 or offset > BLOCK_SIZE - MIN_RECORD_LEN:
        raise CacheError(f"invalid cache record offset {offset}")
    try:
        header, size, protect, days, mins, ticks, kind, name_len = (
            _FIXED.unpack_from(records, offset)
        )
    except struct.error as exc:
        raise CacheError(f"truncated cache record at offset {offset}") from exc

    if not 1 <= name_len <= MAX_NAME_LEN:
        raise CacheError(f"invalid name length {name_len}")
    name_start = offset + 24
    name_end = name_start + name_len
    if name_end > BLOCK_SIZE or name_end >= len(records):
        raise CacheError("cache record name runs past the block")
    name = bytes(records[name_start:name_end])

    comment_len = records[name_end]
    if comment_len > MAX_COMMENT_LEN:
        raise CacheError(f"invalid comment length {comment_len}")
    comment_end = name_end + 1 + comment_len
    if comment_end > BLOCK_SIZE or comment_end > len(records):
        raise CacheError("cache record comment runs past the block")
    comment = bytes(records[name_end + 1:comment_end])

    entry = CacheEntry(
        header=header,
        name=name.decode(_ENCODING),
        type=kind,
        size=size,
        protect=protect,
        days=days,
        mins=mins,
        ticks=ticks,
        comment=comment.decode(_ENCODING),
    )
    return entry, comment_end + (comment_end % 2)