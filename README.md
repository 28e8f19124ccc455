# amigadisk

Low-level building blocks for working with Amiga disk images (`.adf` dump
files) in pure Python, with no third-party dependencies.

## Modules

- `amigadisk.device` – open a dump file as a block device addressed in
  512-byte sectors (`Device`), tell the device type from an image size
  (`device_type`, `DeviceType`) and create zero-filled images of a given
  geometry (`create_dump_device`). `Device` has `read_block`, `write_block`,
  `close` and works as a context manager; its `type`, `size`, `cylinders`,
  `heads`, `sectors` and `read_only` attributes describe the image. Opening
  for writing falls back to read-only when the file cannot be written.
- `amigadisk.bitmap` – the free-block bitmap of a volume (`Bitmap`):
  `is_free`, `set_free`, `set_used`, `allocate`, `allocate_one`,
  `count_free`, `changed_blocks`, `mark_clean`, `encode` and
  `Bitmap.from_maps`. Also the standard block checksum (`normal_sum`),
  the number of bitmap blocks a volume needs (`bitmap_size`) and bitmap
  block encoding (`encode_bitmap_block`, `decode_bitmap_block`).
- `amigadisk.cache_entry` – single directory-cache records (`CacheEntry`
  with `encode` and `record_length`, and `decode_cache_entry`).
- `amigadisk.dircache` – whole directory-cache blocks (`DirCacheBlock` with
  `entries`, `add`, `remove`, `update`, `fits` and `to_bytes`, and
  `parse_dir_cache_block`, which checks checksum, block type and header key).
- `amigadisk.paths` – path names on a volume: `split_path` separates the
  volume name and the entry names, `check_name` rejects names containing
  `/` or `:`, and `LookupMode` holds the flags for resolving a path.
- `amigadisk.binio` – helpers for file contents: `readbin_size` picks the
  element size for a type code, `pack_values` encodes strings, integers,
  reals, complex numbers or bytes as binary data, and `split_lines` splits
  bytes into lines.

Errors are raised as exceptions: `DeviceError`, `BitmapError`,
`CacheError`, `PathError` (a `ValueError`), and `ValueError` or
`TypeError` from `amigadisk.binio`.

## Installation

```
pip install .
```

## Examples

Create a blank double-density floppy image and read a block back:

```python
from amigadisk.device import Device, DeviceType, create_dump_device

create_dump_device("blank.adf", 80, 2, 11).close()

with Device("blank.adf", read_only=False) as dev:
    assert dev.type is DeviceType.FLOPDD
    dev.write_block(880, b"\x00" * 512)
    data = dev.read_block(880, 512)
```

Track free space on a volume:

```python
from amigadisk.bitmap import Bitmap

bitmap = Bitmap(0, 1759, 880)
print(bitmap.count_free())
block = bitmap.allocate_one()
print(bitmap.changed_blocks())
```

Split a path:

```python
from amigadisk.paths import split_path

print(split_path("Workbench:Devs/Keymaps"))  # ('Workbench', ['Devs', 'Keymaps'])
```

## What the package does not do

The pieces above are not tied together into a filesystem. The package does
not mount volumes, read root, directory or file header blocks, resolve a
path to an entry on disk, list directories, or create, read, write, rename
or delete files. `Device.volumes` is left for the caller to fill. There is
no command-line tool.

## Running the tests

```
pip install .[test]
pytest
```