import struct

import pytest

from amigadisk.bitmap import normal_sum
from amigadisk.cache_entry import CacheEntry, CacheError
from amigadisk.dircache import (
    RECORDS_SIZE,
    T_DIRC,
    DirCacheBlock,
    parse_dir_cache_block,
)


def _entry(header, name, **kwargs):
    return CacheEntry(header=header, name=name, type=2, **kwargs)


@pytest.fixture
def block():
    blk = DirCacheBlock(sector=900, parent=880)
    blk.add(_entry(901, "alpha", size=10))
    blk.add(_entry(902, "beta", comment="note"))
    blk.add(_entry(903, "gamma", days=3, mins=61, ticks=150))
    return blk


def test_empty_block_has_no_entries():
    blk = DirCacheBlock(sector=10, parent=5)
    assert blk.entries() == []
    assert blk.used == 0


def test_add_keeps_order(block):
    assert [e.name for e in block.entries()] == ["alpha", "beta", "gamma"]
    assert block.count == 3


def test_used_matches_record_lengths(block):
    assert block.used == sum(e.record_length() for e in block.entries())


def test_round_trip(block):
    data = block.to_bytes()
    parsed = parse_dir_cache_block(data, 900)
    assert parsed.entries() == block.entries()
    assert parsed.parent == 880
    assert parsed.next_block == 0
    assert parsed.to_bytes() == data


def test_header_fields(block):
    block.next_block = 1234
    data = block.to_bytes()
    assert len(data) == 512
    assert struct.unpack(">I", data[:4])[0] == T_DIRC
    assert struct.unpack(">i", data[4:8])[0] == 900
    assert struct.unpack(">i", data[8:12])[0] == 880
    assert struct.unpack(">I", data[12:16])[0] == 3
    assert struct.unpack(">i", data[16:20])[0] == 1234


def test_checksum_field(block):
    data = block.to_bytes()
    assert struct.unpack(">I", data[20:24])[0] == normal_sum(data, 20)


def test_parse_rejects_wrong_sector(block):
    with pytest.raises(CacheError):
        parse_dir_cache_block(block.to_bytes(), 901)


def test_parse_rejects_bad_checksum(block):
    data = bytearray(block.to_bytes())
    data[100] ^= 0xFF
    with pytest.raises(CacheError):
        parse_dir_cache_block(bytes(data), 900)


def test_parse_rejects_wrong_type(block):
    data = bytearray(block.to_bytes())
    struct.pack_into(">I", data, 0, T_DIRC + 1)
    struct.pack_into(">I", data, 20, normal_sum(bytes(data), 20))
    with pytest.raises(CacheError):
        parse_dir_cache_block(bytes(data), 900)


def test_parse_rejects_short_data():
    with pytest.raises(CacheError):
        parse_dir_cache_block(bytes(100), 0)


def test_records_must_have_fixed_size():
    with pytest.raises(CacheError):
        DirCacheBlock(sector=1, parent=2, records=bytearray(10))


def test_remove_middle(block):
    before = block.used
    removed = block.remove(902)
    assert removed.name == "beta"
    assert [e.name for e in block.entries()] == ["alpha", "gamma"]
    assert block.used == before - removed.record_length()
    assert block.records[block.used:] == bytes(RECORDS_SIZE - block.used)


def test_remove_last(block):
    block.remove(903)
    assert [e.header for e in block.entries()] == [901, 902]
    assert block.records[block.used:] == bytes(RECORDS_SIZE - block.used)


def test_remove_missing(block):
    with pytest.raises(CacheError):
        block.remove(999)


def test_update_same_length(block):
    old = block.update(_entry(902, "betb", comment="note", size=77))
    assert old.name == "beta"
    entries = block.entries()
    assert [e.name for e in entries] == ["alpha", "betb", "gamma"]
    assert entries[1].size == 77


def test_update_shorter(block):
    block.update(_entry(901, "a"))
    assert [e.name for e in block.entries()] == ["a", "beta", "gamma"]
    assert block.used == sum(e.record_length() for e in block.entries())
    assert block.records[block.used:] == bytes(RECORDS_SIZE - block.used)


def test_update_longer_moves_to_end(block):
    block.update(_entry(901, "alpha_longer_name", comment="grown"))
    entries = block.entries()
    assert [e.header for e in entries] == [902, 903, 901]
    assert entries[-1].comment == "grown"


def test_update_missing(block):
    with pytest.raises(CacheError):
        block.update(_entry(555, "x"))


def _big(header):
    return _entry(header, "n" * 30, comment="c" * 79)


def test_add_when_full_raises():
    blk = DirCacheBlock(sector=1, parent=2)
    header = 10
    while blk.fits(_big(header)):
        blk.add(_big(header))
        header += 1
    assert blk.used + _big(header).record_length() > RECORDS_SIZE
    with pytest.raises(CacheError):
        blk.add(_big(header))


def test_update_longer_without_room_leaves_block_unchanged():
    blk = DirCacheBlock(sector=1, parent=2)
    blk.add(_entry(5, "s"))
    header = 10
    while blk.fits(_big(header)):
        blk.add(_big(header))
        header += 1
    snapshot = blk.to_bytes()
    with pytest.raises(CacheError):
        blk.update(_entry(5, "s" * 30, comment="x" * 79))
    assert blk.to_bytes() == snapshot