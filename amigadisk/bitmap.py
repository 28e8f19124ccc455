"""Free-block bitmap of an Amiga filesystem volume.

Each bitmap block holds a checksum followed by 127 long words; every bit
describes one block of the volume, starting at block 2.  A set bit marks
a free block, a cleared bit a used one.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable, Sequence

BLOCK_SIZE = 512
MAP_WORDS = 127
BITS_PER_MAP = MAP_WORDS * 32

_BLOCK_STRUCT = struct.Struct(">128I")


class BitmapError(Exception):
    """Raised for invalid bitmap blocks, sectors or allocation failures."""


def bitmap_size(n_blocks: int) -> int:
    """Return how many bitmap blocks are needed to describe ``n_blocks`` blocks."""
    if n_blocks < 0:
        raise BitmapError(f"invalid block count {n_blocks}")
    return -(-n_blocks // BITS_PER_MAP)


def normal_sum(data: bytes, offset: int) -> int:
    """Return the standard block checksum of ``data``.

    The long word at byte ``offset`` (the checksum field) is left out of the
    sum; the result is the two's complement of the sum of the other words.
    """
    if len(data) % 4:
        raise BitmapError("checksummed data must be a whole number of long words")
    skip = offset // 4
    total = sum(
        word
        for index, (word,) in enumerate(struct.iter_unpack(">I", data))
        if index != skip
    )
    return -total & 0xFFFFFFFF


def encode_bitmap_block(words: Sequence[int]) -> bytes:
    """Encode 127 map words into a 512-byte bitmap block with its checksum."""
    if len(words) != MAP_WORDS:
        raise BitmapError(f"a bitmap block holds {MAP_WORDS} words, got {len(words)}")
    body = bytearray(_BLOCK_STRUCT.pack(0, *(w & 0xFFFFFFFF for w in words)))
    struct.pack_into(">I", body, 0, normal_sum(body, 0))
    return bytes(body)


def decode_bitmap_block(data: bytes) -> list[int]:
    """Decode a 512-byte bitmap block into its 127 map words."""
    if len(data) != BLOCK_SIZE:
        raise BitmapError(f"a bitmap block is {BLOCK_SIZE} bytes, got {len(data)}")
    checksum, *words = _BLOCK_STRUCT.unpack(data)
    if checksum != normal_sum(data, 0):
        raise BitmapError("invalid bitmap block checksum")
    return words


def _locate(sector: int) -> tuple[int, int, int]:
    offset = sector - 2
    return offset // BITS_PER_MAP, (offset // 32) % MAP_WORDS, 1 << (offset % 32)


class Bitmap:
    """In-memory free-block map of one volume."""

    def __init__(self, first_block: int, last_block: int, root_block: int) -> None:
        """Create a bitmap in which every allocatable block is free."""
        self._setup(first_block, last_block, root_block,
                    bitmap_size(last_block - first_block + 1 - 2))
        for sector in range(first_block + 2, last_block - first_block + 1):
            self.set_free(sector)

    def _setup(self, first_block: int, last_block: int, root_block: int,
               n_maps: int) -> None:
        self.first_block = first_block
        self.last_block = last_block
        self.root_block = root_block
        self._maps = [[0] * MAP_WORDS for _ in range(n_maps)]
        self._changed = [False] * n_maps

    @classmethod
    def from_maps(cls, first_block: int, last_block: int, root_block: int,
                  maps: Iterable[Sequence[int]]) -> Bitmap:
        """Build a bitmap from map words already read from disk."""
        loaded = [list(words) for words in maps]
        for words in loaded:
            if len(words) != MAP_WORDS:
                raise BitmapError(
                    f"a bitmap block holds {MAP_WORDS} words, got {len(words)}"
                )
        bitmap = cls.__new__(cls)
        bitmap._setup(first_block, last_block, root_block, len(loaded))
        bitmap._maps = loaded
        return bitmap

    def __len__(self) -> int:
        return len(self._maps)

    def words(self, index: int) -> list[int]:
        """Return a copy of the map words of bitmap block ``index``."""
        return list(self._maps[index])

    def encode(self, index: int) -> bytes:
        """Return bitmap block ``index`` encoded for writing to disk."""
        return encode_bitmap_block(self._maps[index])

    def _position(self, sector: int) -> tuple[int, int, int]:
        if sector < 2:
            raise BitmapError(f"sector {sector} is not covered by the bitmap")
        block, index, mask = _locate(sector)
        if block >= len(self._maps):
            raise BitmapError(f"sector {sector} lies beyond the bitmap")
        return block, index, mask

    def is_free(self, sector: int) -> bool:
        """Tell whether ``sector`` is marked free."""
        block, index, mask = self._position(sector)
        return bool(self._maps[block][index] & mask)

    def set_free(self, sector: int) -> None:
        """Mark ``sector`` as free."""
        block, index, mask = self._position(sector)
        self._maps[block][index] |= mask
        self._changed[block] = True

    def set_used(self, sector: int) -> None:
        """Mark ``sector`` as used."""
        block, index, mask = self._position(sector)
        self._maps[block][index] &= ~mask & 0xFFFFFFFF
        self._changed[block] = True

    def allocate(self, count: int) -> list[int]:
        """Reserve ``count`` free blocks, searching from the root block onward.

        The search wraps from the end of the volume back to block 2.  Either
        all requested blocks are marked used and returned, or none are and
        BitmapError is raised.
        """
        found: list[int] = []
        block = self.root_block
        full = False
        while len(found) < count and not full:
            if self.is_free(block):
                found.append(block)
            if block + self.first_block == self.last_block:
                block = 2
            else:
                block += 1
                if block == self.root_block:
                    full = True
        if len(found) != count:
            raise BitmapError(f"volume full: cannot allocate {count} blocks")
        for sector in found:
            self.set_used(sector)
        return found

    def allocate_one(self) -> int:
        """Reserve a single free block and return its sector number."""
        return self.allocate(1)[0]

    def count_free(self) -> int:
        """Return the number of free blocks on the volume."""
        return sum(
            1
            for sector in range(self.first_block + 2,
                                self.last_block - self.first_block + 1)
            if self.is_free(sector)
        )

    def changed_blocks(self) -> list[int]:
        """Return the indexes of bitmap blocks modified since the last clean mark."""
        return [index for index, changed in enumerate(self._changed) if changed]

    def mark_clean(self) -> None:
        """Forget pending modifications, e.g. after writing them out."""
        self._changed = [False] * len(self._maps)