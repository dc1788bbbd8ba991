"""
Source Encoding Conversion
==========================

Text stored in a Palm database (the database name and the text records)
uses whatever single-byte character set the device was configured for.
This module converts such text into UTF-8.

Conversion Contract
-------------------
The database code relies on two operations:

1. ``converted_size(data, encoding)``: how many bytes the UTF-8 form of
   ``data`` needs.
2. ``convert_into(data, encoding, out)``: write that UTF-8 form into a
   caller-supplied buffer at least ``converted_size`` bytes long.

Input is converted whole, embedded NUL bytes included. Records carry
their own size, and the name field is already cut at its NUL when the
header is decoded.

``TextEncoding.NONE`` is the identity transform. Encoding names are
resolved once with ``lookup_encoding()``, which raises
``UnknownEncodingError`` for anything outside the known set so that the
caller can reject it before converting anything.

Usage
-----
    >>> from palm_pdb.encoding import lookup_encoding, to_utf8
    >>> enc = lookup_encoding("cp1250")
    >>> to_utf8(b"\\x8a\\x9a", enc)
    b'\\xc5\\xa0\\xc5\\xa1'

Copyright (c) 2026 palm-pdb Contributors
"""

from enum import Enum
from typing import Union
import codecs
import logging

from palm_pdb.errors import EncodingError, UnknownEncodingError

logger = logging.getLogger(__name__)


class TextEncoding(Enum):
    """
    Known source encodings.

    Values are the display names listed by ``pdbdump -e ?``. Every member
    except NONE maps onto a Python codec.
    """
    NONE = "none"
    CP1250 = "cp1250"
    CP1251 = "cp1251"
    CP1252 = "cp1252"
    CP437 = "cp437"
    CP850 = "cp850"
    CP852 = "cp852"
    ISO_8859_1 = "iso-8859-1"
    ISO_8859_2 = "iso-8859-2"
    ISO_8859_5 = "iso-8859-5"
    KOI8_R = "koi8-r"
    KOI8_U = "koi8-u"
    UTF_8 = "utf-8"

    @property
    def codec_name(self) -> str:
        """Python codec name, or "" for the identity encoding."""
        if self is TextEncoding.NONE:
            return ""
        return codecs.lookup(self.value).name

    @property
    def is_identity(self) -> bool:
        return self is TextEncoding.NONE


# Codec name -> member, used to resolve aliases such as "latin2" or "L1"
_BY_CODEC: dict[str, TextEncoding] = {
    enc.codec_name: enc for enc in TextEncoding if not enc.is_identity
}


def list_encodings() -> list[str]:
    """Return the names of all known encodings in display order."""
    return [enc.value for enc in TextEncoding]


def lookup_encoding(name: Union[str, TextEncoding]) -> TextEncoding:
    """
    Resolve an encoding name to a TextEncoding.

    Matching is case-insensitive and accepts any alias Python's codec
    registry knows for one of the supported encodings.

    Args:
        name: Encoding name (or an already resolved TextEncoding)

    Returns:
        The matching TextEncoding member

    Raises:
        UnknownEncodingError: If the name does not denote a known encoding
    """
    if isinstance(name, TextEncoding):
        return name

    key = name.strip().lower()
    if key in ("", "none"):
        return TextEncoding.NONE

    try:
        return TextEncoding(key)
    except ValueError:
        pass

    try:
        codec = codecs.lookup(key)
    except LookupError:
        raise UnknownEncodingError(name, list_encodings()) from None

    if codec.name in _BY_CODEC:
        return _BY_CODEC[codec.name]
    raise UnknownEncodingError(name, list_encodings())


def to_utf8(data: bytes, encoding: TextEncoding) -> bytes:
    """
    Convert a byte sequence to UTF-8.

    Raises:
        EncodingError: If the input is not valid in the source encoding
    """
    text = bytes(data)
    if encoding.is_identity:
        return text

    try:
        return text.decode(encoding.codec_name).encode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError(
            f"cannot decode {len(text)} bytes as {encoding.value}: {e.reason} "
            f"at position {e.start}"
        ) from e


def converted_size(data: bytes, encoding: TextEncoding) -> int:
    """Number of bytes the UTF-8 form of ``data`` occupies."""
    return len(to_utf8(data, encoding))


def convert_into(data: bytes, encoding: TextEncoding, out: bytearray) -> int:
    """
    Convert ``data`` into a caller-supplied buffer.

    Args:
        data: Source bytes
        encoding: Source encoding
        out: Destination, at least ``converted_size(data, encoding)`` long

    Returns:
        Number of bytes written to ``out``

    Raises:
        EncodingError: If the input cannot be decoded
        ValueError: If ``out`` is too small
    """
    converted = to_utf8(data, encoding)
    if len(out) < len(converted):
        raise ValueError(
            f"output buffer too small: need {len(converted)} bytes, "
            f"got {len(out)}"
        )
    out[:len(converted)] = converted
    return len(converted)
