"""Block devices backed by Amiga disk image (dump) files."""

from __future__ import annotations

import errno
import os
from enum import IntEnum
from typing import BinaryIO

BLOCK_SIZE = 512

_FLOPPY_DD_SIZES = frozenset(
    BLOCK_SIZE * 11 * 2 * cylinders for cylinders in (80, 81, 82, 83)
)
_FLOPPY_HD_SIZE = BLOCK_SIZE * 22 * 2 * 80


class DeviceError(Exception):
    """Raised when a device cannot be opened, read or written."""


class DeviceType(IntEnum):
    """Kinds of device an image can represent."""

    FLOPDD = 1
    FLOPHD = 2
    HARDDISK = 3
    HARDFILE = 4


# (sectors, heads) assumed when opening an image of each type.
_OPEN_GEOMETRY = {
    DeviceType.FLOPDD: (11, 2),
    DeviceType.FLOPHD: (22, 2),
    DeviceType.HARDFILE: (1, 1),
}


def device_type(size: int) -> DeviceType:
    """Return the device type implied by an image size in bytes."""
    if size in _FLOPPY_DD_SIZES:
        return DeviceType.FLOPDD
    if size == _FLOPPY_HD_SIZE:
        return DeviceType.FLOPHD
    if size > _FLOPPY_HD_SIZE:
        return DeviceType.HARDDISK
    raise DeviceError(f"unknown device type for an image of {size} bytes")


def _open_image(path: str | os.PathLike, read_only: bool) -> tuple[BinaryIO, bool]:
    """Open an image file, falling back to read-only access when needed."""
    if read_only:
        try:
            return open(path, "rb"), True
        except OSError as exc:
            raise DeviceError(f"cannot open {os.fspath(path)!r}: {exc}") from exc
    try:
        return open(path, "r+b"), False
    except OSError as exc:
        if exc.errno not in (errno.EACCES, errno.EROFS):
            raise DeviceError(f"cannot open {os.fspath(path)!r}: {exc}") from exc
    try:
        return open(path, "rb"), True
    except OSError as exc:
        raise DeviceError(f"cannot open {os.fspath(path)!r}: {exc}") from exc


def _image_size(handle: BinaryIO) -> int:
    handle.seek(0, os.SEEK_END)
    size = handle.tell()
    handle.seek(0, os.SEEK_SET)
    return size


class Device:
    """An opened disk image addressed in 512-byte sectors.

    The filesystem on the image is not inspected; mounting volumes is
    left to higher layers, which fill ``volumes``.
    """

    def __init__(self, path: str | os.PathLike, read_only: bool = False) -> None:
        handle, read_only = _open_image(path, read_only)
        try:
            size = _image_size(handle)
            kind = device_type(size)
            if kind not in _OPEN_GEOMETRY:
                raise DeviceError(f"cannot open a device of type {kind.name}")
            sectors, heads = _OPEN_GEOMETRY[kind]
        except BaseException:
            handle.close()
            raise
        self._attach(
            handle,
            path,
            read_only=read_only,
            size=size,
            kind=kind,
            cylinders=size // (sectors * heads * BLOCK_SIZE),
            heads=heads,
            sectors=sectors,
        )

    def _attach(
        self,
        handle: BinaryIO,
        path: str | os.PathLike,
        *,
        read_only: bool,
        size: int,
        kind: DeviceType,
        cylinders: int,
        heads: int,
        sectors: int,
    ) -> None:
        self._handle = handle
        self.path = os.fspath(path)
        self.read_only = read_only
        self.size = size
        self.type = kind
        self.cylinders = cylinders
        self.heads = heads
        self.sectors = sectors
        self.volumes: list = []

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def _seek(self, sector: int) -> None:
        if self._handle.closed:
            raise DeviceError("device is closed")
        if sector < 0:
            raise DeviceError(f"invalid sector {sector}")
        self._handle.seek(BLOCK_SIZE * sector, os.SEEK_SET)

    def read_block(self, sector: int, size: int = BLOCK_SIZE) -> bytes:
        """Read ``size`` bytes starting at ``sector``."""
        self._seek(sector)
        data = self._handle.read(size)
        if len(data) != size:
            raise DeviceError(
                f"short read at sector {sector}: got {len(data)} of {size} bytes"
            )
        return data

    def write_block(self, sector: int, data: bytes) -> None:
        """Write ``data`` starting at ``sector``."""
        if self.read_only:
            raise DeviceError("cannot write to a read-only device")
        self._seek(sector)
        try:
            written = self._handle.write(bytes(data))
        except OSError as exc:
            raise DeviceError(f"write failed at sector {sector}: {exc}") from exc
        if written != len(data):
            raise DeviceError(f"short write at sector {sector}")

    def close(self) -> None:
        """Release the image file."""
        self.volumes.clear()
        if not self._handle.closed:
            self._handle.close()

    def __enter__(self) -> Device:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Device({self.path!r}, type={self.type.name}, "
            f"geometry={self.cylinders}/{self.heads}/{self.sectors})"
        )


def create_dump_device(
    path: str | os.PathLike, cylinders: int, heads: int, sectors: int
) -> Device:
    """Create a zero-filled image of the given geometry and open it for writing."""
    n_blocks = cylinders * heads * sectors
    if n_blocks < 1:
        raise DeviceError("device geometry must describe at least one block")
    try:
        with open(path, "wb") as handle:
            handle.seek((n_blocks - 1) * BLOCK_SIZE)
            handle.write(bytes(BLOCK_SIZE))
        handle = open(path, "r+b")
    except OSError as exc:
        raise DeviceError(f"cannot create {os.fspath(path)!r}: {exc}") from exc

    size = n_blocks * BLOCK_SIZE
    if size == 80 * 11 * 2 * BLOCK_SIZE:
        kind = DeviceType.FLOPDD
    elif size == 80 * 22 * 2 * BLOCK_SIZE:
        kind = DeviceType.FLOPHD
    else:
        kind = DeviceType.HARDDISK

    device = Device.__new__(Device)
    device._attach(
        handle,
        path,
        read_only=False,
        size=size,
        kind=kind,
        cylinders=cylinders,
        heads=heads,
        sectors=sectors,
    )
    return device