"""
PalmDoc LZ77 Decompression
==========================

This module expands text records compressed with the PalmDoc LZ77
variant (text header compression mode 2).

Control Byte Grammar
--------------------
The input is read one control byte at a time:

    Byte        Meaning
    ----        -------
    0x00        Literal: emit the byte unchanged
    0x01-0x08   Literal run: copy the next 1-8 input bytes verbatim
    0x09-0x7F   Literal: emit the byte unchanged
    0x80-0xBF   Back-reference: this byte and the next form a 16-bit
                big-endian word V
                    length   = (V & 0x0007) + 3          (3-10)
                    distance = (V & 0x3FFF) >> 3         (0-2047)
                Copy `length` bytes, one at a time, from `distance`
                bytes behind the write position
    0xC0-0xFF   Space pair: emit 0x20, then (byte XOR 0x80)

Back-references may overlap the bytes they produce (distance < length),
which repeats the most recent output: 'A' followed by distance 1,
length 5 gives "AAAAA". A reference reaching before the start of the
output reads zero bytes.

Two Passes
----------
``decompressed_size()`` walks the grammar without producing output.
``expand()`` walks it again and writes into a buffer preallocated to
exactly that size. Truncated operations at the end of the input (a
literal run that is cut short, or a back-reference missing its second
byte) end decoding in both passes, so the two always agree.

Usage
-----
    >>> from palm_pdb.pdb.lz77 import expand
    >>> expand(bytes([0x41, 0x80, 0x0A]))
    b'AAAAAA'

Copyright (c) 2026 palm-pdb Contributors
"""

from typing import Final
import logging

from palm_pdb.encoding import TextEncoding, convert_into, converted_size
from palm_pdb.errors import AllocationError
from palm_pdb.pdb.records import RecordBuffer

logger = logging.getLogger(__name__)


# =============================================================================
# Grammar Constants
# =============================================================================

LITERAL_RUN_MIN: Final[int] = 0x01
LITERAL_RUN_MAX: Final[int] = 0x08
BACKREF_MIN: Final[int] = 0x80
BACKREF_MAX: Final[int] = 0xBF
SPACE_PAIR_MIN: Final[int] = 0xC0

DISTANCE_MASK: Final[int] = 0x3FFF
LENGTH_MASK: Final[int] = 0x0007
MIN_MATCH: Final[int] = 3


def _backref(high: int, low: int) -> tuple[int, int]:
    """Split a back-reference word into (distance, length)."""
    word = (high << 8) | low
    return (word & DISTANCE_MASK) >> 3, (word & LENGTH_MASK) + MIN_MATCH


# =============================================================================
# Pass 1: Size Estimation
# =============================================================================

def decompressed_size(data: bytes) -> int:
    """
    Compute the number of bytes ``expand(data)`` will produce.

    Args:
        data: Compressed record payload

    Returns:
        Exact expanded length in bytes
    """
    size = 0
    i = 0
    end = len(data)

    while i < end:
        b = data[i]
        i += 1

        if LITERAL_RUN_MIN <= b <= LITERAL_RUN_MAX:
            run = min(b, end - i)
            size += run
            i += run
        elif b < BACKREF_MIN:
            size += 1
        elif b <= BACKREF_MAX:
            if i >= end:
                break
            _, length = _backref(b, data[i])
            i += 1
            size += length
        else:
            size += 2

    return size


# =============================================================================
# Pass 2: Expansion
# =============================================================================

def expand(data: bytes) -> bytes:
    """
    Expand a PalmDoc LZ77 payload.

    The output buffer is allocated once, at the size computed by
    ``decompressed_size()``.

    Args:
        data: Compressed record payload

    Returns:
        The expanded bytes, still in the database's source encoding

    Raises:
        AllocationError: If the output buffer cannot be allocated
    """
    try:
        total = decompressed_size(data)
        out = bytearray(total)
    except MemoryError as e:
        raise AllocationError(
            f"cannot allocate buffer for {len(data)}-byte compressed record"
        ) from e

    i = 0
    j = 0
    end = len(data)
    short_refs = 0

    while i < end:
        b = data[i]
        i += 1

        if LITERAL_RUN_MIN <= b <= LITERAL_RUN_MAX:
            run = min(b, end - i)
            out[j:j + run] = data[i:i + run]
            i += run
            j += run
        elif b < BACKREF_MIN:
            out[j] = b
            j += 1
        elif b <= BACKREF_MAX:
            if i >= end:
                logger.debug("Back-reference truncated at end of input")
                break
            distance, length = _backref(b, data[i])
            i += 1
            if distance > j:
                short_refs += 1
            # Byte by byte: the source may overlap what this loop writes
            for _ in range(length):
                out[j] = out[j - distance] if j >= distance else 0
                j += 1
        else:
            out[j] = 0x20
            out[j + 1] = b ^ 0x80
            j += 2

    if short_refs:
        logger.warning(
            f"{short_refs} back-reference(s) reached before start of output; "
            f"zero-filled"
        )

    if j != total:
        raise RuntimeError(
            f"LZ77 size pass ({total}) and expansion pass ({j}) disagree"
        )

    return bytes(out)


# =============================================================================
# Decompression with Encoding Conversion
# =============================================================================

def decompress(data: bytes, encoding: TextEncoding = TextEncoding.NONE) -> RecordBuffer:
    """
    Expand a compressed record and convert it to UTF-8.

    The returned buffer carries a trailing zero byte that is not counted
    in its size.

    Args:
        data: Compressed record payload
        encoding: Source encoding of the text

    Returns:
        RecordBuffer holding the converted text

    Raises:
        AllocationError: If a buffer cannot be allocated
        EncodingError: If the expanded bytes cannot be converted
    """
    expanded = expand(data)
    buf = convert_text(expanded, encoding)
    logger.debug(
        f"Decompressed {len(data)} -> {len(expanded)} bytes "
        f"({buf.size} bytes after {encoding.value} conversion)"
    )
    return buf


def convert_text(data: bytes, encoding: TextEncoding) -> RecordBuffer:
    """
    Convert record text to UTF-8 in a buffer sized up front.

    The output is sized with ``converted_size()``, allocated with one
    extra byte for the terminator, and filled with ``convert_into()``.

    Raises:
        AllocationError: If the output buffer cannot be allocated
        EncodingError: If the text cannot be converted
    """
    size = converted_size(data, encoding)
    try:
        out = bytearray(size + 1)
    except MemoryError as e:
        raise AllocationError(f"cannot allocate {size + 1}-byte output buffer") from e

    written = convert_into(data, encoding, out)
    return RecordBuffer(data=bytes(out), size=written)
