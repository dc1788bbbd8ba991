"""
PDB Structure Definitions
=========================

This module defines the fixed binary structures of a Palm OS Database
(PDB) file and the PalmDoc text header stored in its first record.

File Structure Overview
-----------------------
A PDB file contains:
1. Database Header (78 bytes): name, attributes, dates, type/creator, count
2. Record Descriptor Table (8 bytes x number_of_records)
3. Record Data: raw record payloads, back to back, up to end of file

Record lengths are not stored anywhere. A record runs from its own
descriptor offset to the next descriptor's offset, and the last record
runs to the end of the file.

Database Header
---------------
    Offset  Size    Description
    ------  ----    -----------
    0       32      Name (NUL-terminated, NUL-padded)
    32      2       File attributes
    34      2       Version
    36      4       Creation date
    40      4       Modification date
    44      4       Last backup date
    48      4       Modification number
    52      4       AppInfo area offset
    56      4       SortInfo area offset
    60      4       Database type (4 chars, not terminated)
    64      4       Creator ID (4 chars, not terminated)
    68      4       Unique ID seed
    72      4       Next record list ID
    76      2       Number of records

All multi-byte integers are big-endian.

Reference
---------
- PDB format: https://wiki.mobileread.com/wiki/PDB
- PalmDoc: https://wiki.mobileread.com/wiki/PalmDOC

Copyright (c) 2026 palm-pdb Contributors
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum, IntFlag
from typing import Final, Union
import struct

from palm_pdb.errors import ReadError


# =============================================================================
# Format Constants
# =============================================================================

PDB_NAME_SIZE: Final[int] = 32
PDB_HEADER_SIZE: Final[int] = 78
PDB_RECORD_DESCRIPTOR_SIZE: Final[int] = 8
PDB_TEXT_HEADER_SIZE: Final[int] = 16

# Seconds between the Palm epoch (1904-01-01) and the Unix epoch
PALM_EPOCH_OFFSET: Final[int] = 2082844800

_HEADER_FORMAT = struct.Struct(">32sHHIIIIII4s4sIIH")
_DESCRIPTOR_FORMAT = struct.Struct(">IB3s")
_TEXT_HEADER_FORMAT = struct.Struct(">HHIHHI")


# =============================================================================
# Enumeration Types
# =============================================================================

class FileAttribute(IntFlag):
    """Database-level attribute bits (header offset 32)."""
    READ_ONLY = 0x0002
    DIRTY_APP_INFO = 0x0004
    BACKUP = 0x0008
    INSTALL_NEWER = 0x0010
    FORCE_RESET = 0x0020
    NO_COPY = 0x0040


class RecordAttribute(IntFlag):
    """Record-level attribute bits (descriptor byte 4)."""
    SECRET = 0x10
    IN_USE = 0x20
    DIRTY = 0x40
    DELETE_PENDING = 0x80


class Compression(IntEnum):
    """PalmDoc text compression modes (text header offset 0)."""
    NONE = 0x01
    LZ77 = 0x02

    @classmethod
    def from_value(cls, value: int) -> Union["Compression", int]:
        """Return the enum member for ``value``, or the raw int if unknown."""
        try:
            return cls(value)
        except ValueError:
            return value

    def get_description(self) -> str:
        descriptions = {
            Compression.NONE: "none",
            Compression.LZ77: "PalmDoc LZ77",
        }
        return descriptions[self]


def palm_time_to_datetime(value: int) -> datetime:
    """
    Convert a PDB timestamp to an aware UTC datetime.

    Palm devices count seconds from 1904-01-01, but many desktop tools
    write Unix timestamps instead. Values with the top bit set can only be
    Palm-epoch dates after 1972, so those are shifted; anything else is
    taken as a Unix timestamp.
    """
    if value & 0x80000000:
        value -= PALM_EPOCH_OFFSET
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _c_string(raw: bytes) -> bytes:
    """Copy a fixed-width field up to its first NUL."""
    end = raw.find(b"\x00")
    return raw if end < 0 else raw[:end]


# =============================================================================
# Database Header
# =============================================================================

@dataclass
class PDBHeader:
    """
    Database header information (78 bytes at file offset 0).

    ``name`` holds the bytes of the name field up to its first NUL. When a
    source encoding is selected on the database the name is replaced by
    its UTF-8 form; nothing else changes after load.
    """
    name: bytes = b""
    file_attributes: int = 0
    version: int = 0
    creation_date: int = 0
    modification_date: int = 0
    last_backup_date: int = 0
    modification_number: int = 0
    app_info_area: int = 0
    sort_info_area: int = 0
    database_type: str = "    "
    creator_id: str = "    "
    unique_id_seed: int = 0
    next_record_list_id: int = 0
    number_of_records: int = 0
    HEADER_SIZE: int = field(default=PDB_HEADER_SIZE, repr=False, init=False)

    @classmethod
    def from_bytes(cls, data: bytes) -> "PDBHeader":
        """
        Decode the fixed 78-byte header.

        Raises:
            ReadError: If fewer than 78 bytes are given
        """
        if len(data) < PDB_HEADER_SIZE:
            raise ReadError(
                f"header too short: need {PDB_HEADER_SIZE} bytes, got {len(data)}"
            )

        (name, file_attributes, version, creation_date, modification_date,
         last_backup_date, modification_number, app_info_area,
         sort_info_area, database_type, creator_id, unique_id_seed,
         next_record_list_id, number_of_records) = _HEADER_FORMAT.unpack_from(data)

        return cls(
            name=_c_string(name),
            file_attributes=file_attributes,
            version=version,
            creation_date=creation_date,
            modification_date=modification_date,
            last_backup_date=last_backup_date,
            modification_number=modification_number,
            app_info_area=app_info_area,
            sort_info_area=sort_info_area,
            database_type=database_type.decode("latin-1"),
            creator_id=creator_id.decode("latin-1"),
            unique_id_seed=unique_id_seed,
            next_record_list_id=next_record_list_id,
            number_of_records=number_of_records,
        )

    def to_bytes(self) -> bytes:
        """Encode the header back into its 78-byte layout."""
        return _HEADER_FORMAT.pack(
            self.name[:PDB_NAME_SIZE],
            self.file_attributes,
            self.version,
            self.creation_date,
            self.modification_date,
            self.last_backup_date,
            self.modification_number,
            self.app_info_area,
            self.sort_info_area,
            self.database_type.encode("latin-1")[:4].ljust(4, b"\x00"),
            self.creator_id.encode("latin-1")[:4].ljust(4, b"\x00"),
            self.unique_id_seed,
            self.next_record_list_id,
            self.number_of_records,
        )

    @property
    def display_name(self) -> str:
        """The name as text; bytes that are not UTF-8 are replaced."""
        return self.name.decode("utf-8", errors="replace")

    @property
    def file_flags(self) -> FileAttribute:
        return FileAttribute(self.file_attributes & 0x007E)

    def get_type_creator(self) -> str:
        """Type and creator as shown by Palm tools, e.g. ``TEXt/REAd``."""
        return f"{self.database_type}/{self.creator_id}"

    def is_palmdoc(self) -> bool:
        return self.database_type == "TEXt" and self.creator_id == "REAd"


# =============================================================================
# Record Descriptor
# =============================================================================

@dataclass(frozen=True)
class RecordDescriptor:
    """
    One entry of the record descriptor table (8 bytes).

    Structure:
        Offset  Size    Description
        ------  ----    -----------
        0       4       Absolute file offset of the record data
        4       1       Attribute bits (see RecordAttribute)
        5       3       Unique ID (opaque 24-bit big-endian value)
    """
    offset: int
    attributes: int = 0
    unique_id: int = 0

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "RecordDescriptor":
        """Decode a descriptor starting at ``offset`` within ``data``."""
        if len(data) - offset < PDB_RECORD_DESCRIPTOR_SIZE:
            raise ReadError(
                f"record descriptor too short: need {PDB_RECORD_DESCRIPTOR_SIZE} "
                f"bytes, got {max(0, len(data) - offset)}"
            )
        data_offset, attributes, uid = _DESCRIPTOR_FORMAT.unpack_from(data, offset)
        return cls(
            offset=data_offset,
            attributes=attributes,
            unique_id=int.from_bytes(uid, "big"),
        )

    def to_bytes(self) -> bytes:
        return _DESCRIPTOR_FORMAT.pack(
            self.offset, self.attributes, self.unique_id.to_bytes(3, "big")
        )

    @property
    def flags(self) -> RecordAttribute:
        return RecordAttribute(self.attributes & 0xF0)

    @property
    def category(self) -> int:
        """Low nibble of the attribute byte (record category)."""
        return self.attributes & 0x0F

    def __repr__(self) -> str:
        return (
            f"RecordDescriptor(offset=0x{self.offset:X}, "
            f"attributes=0x{self.attributes:02X}, unique_id=0x{self.unique_id:06X})"
        )


# =============================================================================
# PalmDoc Text Header
# =============================================================================

@dataclass(frozen=True)
class TextHeader:
    """
    PalmDoc metadata stored in the first 16 bytes of record 0.

    Structure:
        Offset  Size    Description
        ------  ----    -----------
        0       2       Compression (1 = none, 2 = LZ77)
        2       2       Reserved
        4       4       Uncompressed text size
        8       2       Text record count (number_of_records - 1)
        10      2       Uncompressed size of each text record
        12      4       Saved reading position
    """
    compression: Union[Compression, int] = Compression.NONE
    reserved: int = 0
    text_size: int = 0
    record_count: int = 0
    record_size: int = 0
    cur_position: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> "TextHeader":
        """
        Decode a text header from the start of record 0.

        Raises:
            ReadError: If fewer than 16 bytes are given
        """
        if len(data) < PDB_TEXT_HEADER_SIZE:
            raise ReadError(
                f"text header too short: need {PDB_TEXT_HEADER_SIZE} bytes, "
                f"got {len(data)}"
            )
        (compression, reserved, text_size, record_count, record_size,
         cur_position) = _TEXT_HEADER_FORMAT.unpack_from(data)
        return cls(
            compression=Compression.from_value(compression),
            reserved=reserved,
            text_size=text_size,
            record_count=record_count,
            record_size=record_size,
            cur_position=cur_position,
        )

    def to_bytes(self) -> bytes:
        return _TEXT_HEADER_FORMAT.pack(
            int(self.compression),
            self.reserved,
            self.text_size,
            self.record_count,
            self.record_size,
            self.cur_position,
        )

    @property
    def is_compressed(self) -> bool:
        return self.compression == Compression.LZ77


# =============================================================================
# Record Buffer
# =============================================================================

@dataclass(frozen=True)
class RecordBuffer:
    """
    Bytes of one record with an explicit size.

    Raw loads have ``len(data) == size``. Decompressed and converted
    buffers also carry a trailing zero byte in ``data`` that is not
    counted in ``size``.
    """
    data: bytes
    size: int

    @classmethod
    def raw(cls, data: bytes) -> "RecordBuffer":
        return cls(data=bytes(data), size=len(data))

    @property
    def payload(self) -> bytes:
        return self.data[:self.size]

    def __bytes__(self) -> bytes:
        return self.payload

    def __len__(self) -> int:
        return self.size
