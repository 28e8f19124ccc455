"""Directory cache blocks of a fast-filesystem directory.

A directory cache block is laid out big-endian as::

    0   block type (always T_DIRC)
    4   own sector number (header key)
    8   parent directory sector
    12  number of records
    16  next cache block of the directory, 0 for none
    20  checksum
    24  records area (488 bytes)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from amigadisk.bitmap import normal_sum
from amigadisk.cache_entry import CacheEntry, CacheError, decode_cache_entry

BLOCK_SIZE = 512
RECORDS_SIZE = 488
T_DIRC = 33
CHECKSUM_OFFSET = 20

_HEADER = struct.Struct(">IiiIiI")


def _empty_records() -> bytearray:
    return bytearray(RECORDS_SIZE)


@dataclass
class DirCacheBlock:
    """One directory cache block and its packed records."""

    sector: int
    parent: int
    next_block: int = 0
    records: bytearray = field(default_factory=_empty_records)
    count: int = 0

    def __post_init__(self) -> None:
        self.records = bytearray(self.records)
        if len(self.records) != RECORDS_SIZE:
            raise CacheError(
                f"records area must be {RECORDS_SIZE} bytes, got {len(self.records)}"
            )
        if self.count < 0:
            raise CacheError(f"invalid record count {self.count}")

    def _layout(self) -> list[tuple[int, int, CacheEntry]]:
        layout = []
        offset = 0
        for _ in range(self.count):
            entry, end = decode_cache_entry(self.records, offset)
            layout.append((offset, end, entry))
            offset = end
        return layout

    @property
    def used(self) -> int:
        """Number of bytes of the records area taken by records."""
        layout = self._layout()
        return layout[-1][1] if layout else 0

    def entries(self) -> list[CacheEntry]:
        """Return the records of the block in stored order."""
        return [entry for _, _, entry in self._layout()]

    def fits(self, entry: CacheEntry) -> bool:
        """Tell whether ``entry`` can be appended to this block."""
        return self.used + entry.record_length() <= RECORDS_SIZE

    def add(self, entry: CacheEntry) -> None:
        """Append ``entry`` after the last record.

        Raises CacheError when the block has no room left for it.
        """
        record = entry.encode()
        offset = self.used
        if offset + len(record) > RECORDS_SIZE:
            raise CacheError(f"no room for {entry.name!r} in cache block {self.sector}")
        self.records[offset:offset + len(record)] = record
        self.count += 1

    def _find(self, header: int) -> tuple[int, int, int, CacheEntry]:
        for index, (offset, end, entry) in enumerate(self._layout()):
            if entry.header == header:
                return index, offset, end, entry
        raise CacheError(f"entry {header} not found in cache block {self.sector}")

    def remove(self, header: int) -> CacheEntry:
        """Delete the record of header key ``header`` and return it.

        Following records are moved down and the freed bytes cleared.
        """
        index, offset, end, entry = self._find(header)
        length = end - offset
        if index < self.count - 1:
            del self.records[offset:end]
            self.records.extend(bytes(length))
        else:
            self.records[offset:end] = bytes(length)
        self.count -= 1
        return entry

    def update(self, entry: CacheEntry) -> CacheEntry:
        """Replace the record with the same header key as ``entry``.

        A record of equal or smaller size is rewritten in place; a larger
        one is removed and appended at the end.  Returns the old record.
        """
        _, offset, end, old = self._find(entry.header)
        record = entry.encode()
        old_len = end - offset
        if len(record) <= old_len:
            self.records[offset:end] = record
            self.records.extend(bytes(old_len - len(record)))
            return old
        if self.used - old_len + len(record) > RECORDS_SIZE:
            raise CacheError(f"no room for {entry.name!r} in cache block {self.sector}")
        self.remove(entry.header)
        self.add(entry)
        return old

    def to_bytes(self) -> bytes:
        """Encode the block, checksum included."""
        block = bytearray(
            _HEADER.pack(T_DIRC, self.sector, self.parent, self.count,
                         self.next_block, 0)
        )
        block += self.records
        struct.pack_into(">I", block, CHECKSUM_OFFSET,
                         normal_sum(bytes(block), CHECKSUM_OFFSET))
        return bytes(block)


def parse_dir_cache_block(data: bytes, sector: int) -> DirCacheBlock:
    """Decode a directory cache block read from ``sector``.

    Raises CacheError on a bad checksum, a wrong block type or a header
    key that does not match ``sector``.
    """
    if len(data) != BLOCK_SIZE:
        raise CacheError(f"a cache block is {BLOCK_SIZE} bytes, got {len(data)}")
    kind, key, parent, count, next_block, checksum = _HEADER.unpack_from(data)
    if checksum != normal_sum(bytes(data), CHECKSUM_OFFSET):
        raise CacheError(f"invalid checksum in cache block {sector}")
    if kind != T_DIRC:
        raise CacheError(f"block {sector} is not a directory cache block")
    if key != sector:
        raise CacheError(f"cache block header key {key} does not match sector {sector}")
    return DirCacheBlock(
        sector=sector,
        parent=parent,
        next_block=next_block,
        records=bytearray(data[_HEADER.size:]),
        count=count,
    )