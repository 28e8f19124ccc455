"""Binary and line-oriented data conversion for files stored on a volume.

Size rules follow the usual conventions for reading and writing typed
vectors: integers may be stored in 1, 2, 4 or 8 bytes, reals in 4 or 8,
complex numbers as two 8-byte reals and raw bytes one byte each.
"""

from __future__ import annotations

import math
import struct
import sys
import warnings
from collections.abc import Iterable
from numbers import Complex, Integral, Real

# Type codes accepted by readbin_size.
WHAT_NUMERIC = 1
WHAT_DOUBLE = 2
WHAT_INTEGER = 3
WHAT_INT = 4
WHAT_LOGICAL = 5
WHAT_COMPLEX = 6
WHAT_RAW = 8

INT_SIZE = 4
DOUBLE_SIZE = 8
COMPLEX_SIZE = 16

_INT_SIZES = frozenset({1, 2, 4, 8})
_REAL_SIZES = frozenset({4, 8})
_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1


def _unknown_size(size: int) -> ValueError:
    return ValueError(f"size {size} is unknown on this machine")


def _check_int_size(size: int | None, default: int) -> int:
    if size is None:
        size = default
    if size not in _INT_SIZES:
        raise _unknown_size(size)
    return size


def _check_real_size(size: int | None) -> int:
    if size is None:
        size = DOUBLE_SIZE
    if size not in _REAL_SIZES:
        raise _unknown_size(size)
    return size


def readbin_size(what: int, size: int | None = None) -> int | None:
    """Return the element size in bytes to use when reading values of type ``what``.

    ``size`` of None means "use the default for the type".  For unknown
    type codes ``size`` is returned unchanged.  Raises ValueError for a
    size the type cannot be stored in.
    """
    if what == WHAT_COMPLEX:
        return COMPLEX_SIZE if size is None else size
    if what in (WHAT_INTEGER, WHAT_INT):
        return _check_int_size(size, INT_SIZE)
    if what == WHAT_LOGICAL:
        return INT_SIZE
    if what == WHAT_RAW:
        return 1 if size is None else size
    if what in (WHAT_NUMERIC, WHAT_DOUBLE):
        return _check_real_size(size)
    return size


def _classify(items: list) -> str:
    if all(isinstance(v, str) for v in items):
        return "string"
    if all(isinstance(v, Integral) for v in items):
        return "integer"
    if all(isinstance(v, Real) for v in items):
        return "real"
    if all(isinstance(v, Complex) for v in items):
        return "complex"
    raise TypeError("writing binary data is not implemented for the provided object")


def _pack_strings(items: list[str]) -> bytes:
    out = bytearray()
    for text in items:
        raw = text.encode("utf-8")
        nul = raw.find(b"\x00")
        if nul >= 0:
            raw = raw[:nul]
        out += raw + b"\x00"
    return bytes(out)


def _pack_integers(items: list, size: int, order: str) -> bytes:
    bits = size * 8
    out = bytearray()
    for value in items:
        value = int(value)
        if size >= INT_SIZE:
            if not _INT32_MIN <= value <= _INT32_MAX:
                raise ValueError(f"integer value {value} does not fit in 32 bits")
        else:
            value &= (1 << bits) - 1
            if value >= 1 << (bits - 1):
                value -= 1 << bits
        out += value.to_bytes(size, order, signed=True)
    return bytes(out)


def _pack_reals(items: list, size: int, prefix: str) -> bytes:
    code = prefix + ("d" if size == DOUBLE_SIZE else "f")
    out = bytearray()
    for value in items:
        value = float(value)
        try:
            out += struct.pack(code, value)
        except OverflowError:
            out += struct.pack(code, math.copysign(math.inf, value))
    return bytes(out)


def pack_values(
    values: Iterable | bytes | str,
    size: int | None = None,
    swap: bool = False,
) -> bytes:
    """Encode ``values`` as binary data in native byte order.

    Strings are written NUL-terminated (truncated at an embedded NUL),
    integers and booleans as signed integers of ``size`` bytes, reals as
    4- or 8-byte floats, complex numbers as pairs of doubles and byte
    strings unchanged.  ``swap`` reverses the byte order of each element.
    """
    if isinstance(values, (bytes, bytearray, memoryview)):
        size = 1 if size is None else size
        if size != 1:
            raise ValueError("size changing is not supported for raw vectors")
        return bytes(values)
    if isinstance(values, str):
        values = [values]
    items = list(values)
    if not items:
        return b""

    kind = _classify(items)
    if kind == "string":
        return _pack_strings(items)

    native = sys.byteorder
    order = native
    if swap:
        order = "big" if native == "little" else "little"
    prefix = "<" if order == "little" else ">"

    if kind == "integer":
        return _pack_integers(items, _check_int_size(size, INT_SIZE), order)
    if kind == "real":
        return _pack_reals(items, _check_real_size(size), prefix)

    size = COMPLEX_SIZE if size is None else size
    if size != COMPLEX_SIZE:
        raise ValueError("size changing is not supported for complex vectors")
    out = bytearray()
    for value in items:
        value = complex(value)
        out += struct.pack(prefix + "dd", value.real, value.imag)
    return bytes(out)


def split_lines(
    data: bytes,
    n: int = -1,
    ok: bool = True,
    skip_nul: bool = False,
) -> list[bytes]:
    """Split ``data`` into at most ``n`` lines (all of them when ``n`` < 0).

    Lines are separated by ``\\n``; a line is cut at an embedded NUL, with
    a warning, unless ``skip_nul`` drops NUL bytes altogether.  An
    unterminated final line is kept with a warning.  When fewer lines than
    requested are found and ``ok`` is false, ValueError is raised.
    """
    data = bytes(data)
    limit = None if n < 0 else n
    lines: list[bytes] = []
    pos = 0
    while limit is None or len(lines) < limit:
        end = data.find(b"\n", pos)
        at_eof = end < 0
        if at_eof:
            raw = data[pos:]
            pos = len(data)
        else:
            raw = data[pos:end]
            pos = end + 1
        if skip_nul:
            raw = raw.replace(b"\x00", b"")
        if at_eof and not raw:
            break
        nul = raw.find(b"\x00")
        if nul >= 0:
            warnings.warn(
                f"line {len(lines) + 1} appears to contain an embedded nul",
                stacklevel=2,
            )
            raw = raw[:nul]
        lines.append(raw)
        if at_eof:
            warnings.warn("incomplete final line found", stacklevel=2)
            break
    else:
        return lines

    if not ok and (limit is None or len(lines) < limit):
        raise ValueError("too few lines read")
    return lines