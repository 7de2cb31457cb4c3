"""
Byte Order Helpers
==================

MathPad databases store every multi-byte integer most-significant byte
first, as the handheld's 68000-family CPU does. This module owns that
decision for the rest of the package:

- FILE_BYTE_ORDER is the struct prefix used by every on-disk layout
- swap_word() / swap_dword() convert a field in place between the file
  order and the host's native order
- to_native() / from_native() apply those swaps to every multi-byte field
  of a packed structure, given its struct format

On a big-endian host the swaps are identity operations.

The reader and writer never call the swap helpers: every layout in the
package is packed and unpacked by struct with FILE_BYTE_ORDER, which
converts as it goes. The helpers are a standalone utility for callers that
hold a raw file buffer and want its fields in host order in place, for
instance to hand the buffer to native code.

Example
-------
    >>> buf = bytearray(b"\\x00\\x01\\x00\\x00\\x00\\x02")
    >>> to_native(buf, ">HI")
    >>> struct.unpack("=HI", buf)
    (1, 2)
"""

import re
import struct
import sys

# Struct prefix for all on-disk layouts (big-endian, standard sizes, no padding)
FILE_BYTE_ORDER = ">"

# True when the host already stores integers in file order
HOST_IS_BIG_ENDIAN = sys.byteorder == "big"

_FORMAT_ITEM = re.compile(r"(\d*)([xcbB?hHiIlLqQefdsp])")


def swap_word(buffer: bytearray, offset: int = 0) -> None:
    """Swap the two bytes of the 16-bit value at offset, in place."""
    if HOST_IS_BIG_ENDIAN:
        return
    buffer[offset], buffer[offset + 1] = buffer[offset + 1], buffer[offset]


def swap_dword(buffer: bytearray, offset: int = 0) -> None:
    """
    Swap the 32-bit value at offset, in place.

    Done as a swap of the two 16-bit halves followed by a byte swap within
    each half.
    """
    if HOST_IS_BIG_ENDIAN:
        return
    hi = buffer[offset:offset + 2]
    buffer[offset:offset + 2] = buffer[offset + 2:offset + 4]
    buffer[offset + 2:offset + 4] = hi
    swap_word(buffer, offset)
    swap_word(buffer, offset + 2)


def field_layout(fmt: str) -> list[tuple[int, int]]:
    """
    List the (offset, size) of every multi-byte integer in a struct format.

    Only standard-size formats without alignment are meaningful here, so the
    byte-order prefix is ignored and fields are packed back to back. Byte
    strings ("16s") and single bytes are skipped since they need no swap.
    """
    layout = []
    offset = 0
    for count_text, code in _FORMAT_ITEM.findall(fmt.lstrip("@=<>!")):
        count = int(count_text) if count_text else 1
        if code in "sp":
            offset += count
            continue
        size = struct.calcsize(f"<{code}")
        for _ in range(count):
            if size in (2, 4):
                layout.append((offset, size))
            offset += size
    return layout


def to_native(buffer: bytearray, fmt: str, offset: int = 0) -> None:
    """Convert a packed file-order structure to host order, in place."""
    for field_offset, size in field_layout(fmt):
        if size == 2:
            swap_word(buffer, offset + field_offset)
        else:
            swap_dword(buffer, offset + field_offset)


# A swap is its own inverse
from_native = to_native
