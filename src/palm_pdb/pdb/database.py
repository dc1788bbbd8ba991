"""
PDB Database Reader
===================

This module provides PalmDatabase, a handle on an open Palm OS Database
file. Opening a database reads the fixed header and the record
descriptor table; records themselves are read on demand.

Lifecycle
---------
``PalmDatabase.open()`` either returns a fully loaded handle or raises;
the file is closed before any error leaves ``open``. ``close()`` releases
the file and the descriptor table. Handles are context managers:

    >>> from palm_pdb.pdb import PalmDatabase
    >>> with PalmDatabase.open("book.pdb") as db:
    ...     db.set_encoding("cp1252")
    ...     print(db.header.display_name)
    ...     text_header = db.read_text_header()
    ...     first = db.read_text_record(1)

Record Sizing
-------------
Record lengths are derived from the descriptor table: record i spans
``offset[i]`` to ``offset[i + 1]``, and the last record spans to the end
of the file. Decreasing offsets raise CorruptDataError instead of
producing a negative length.

Threading
---------
A handle owns one file object and every load seeks it. Calls on the same
handle must not run concurrently.

Copyright (c) 2026 palm-pdb Contributors
"""

from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union
import io
import logging
import os

from palm_pdb.encoding import TextEncoding, lookup_encoding
from palm_pdb.errors import (
    AllocationError,
    CorruptDataError,
    InvalidArgumentError,
    ReadError,
)
from palm_pdb.pdb import lz77
from palm_pdb.pdb.records import (
    PDB_HEADER_SIZE,
    PDB_RECORD_DESCRIPTOR_SIZE,
    PDB_TEXT_HEADER_SIZE,
    Compression,
    PDBHeader,
    RecordBuffer,
    RecordDescriptor,
    TextHeader,
)

logger = logging.getLogger(__name__)


class PalmDatabase:
    """
    An open Palm OS Database file.

    Attributes:
        path: Path the database was opened from
        header: The decoded database header
        records: Record descriptors, in file order
        encoding: Selected source encoding (TextEncoding.NONE by default)
    """

    def __init__(
        self,
        path: Path,
        fileobj: BinaryIO,
        header: PDBHeader,
        records: tuple[RecordDescriptor, ...],
    ):
        self.path = path
        self.header = header
        self.records = records
        self.encoding = TextEncoding.NONE
        self._file: Optional[BinaryIO] = fileobj
        self._raw_name = header.name

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @classmethod
    def open(cls, path: Union[str, Path]) -> "PalmDatabase":
        """
        Open a PDB file and load its header and descriptor table.

        Args:
            path: Path to the .pdb file

        Returns:
            A loaded PalmDatabase

        Raises:
            ReadError: If the file cannot be opened or is truncated
            AllocationError: If the descriptor table cannot be allocated
        """
        path = Path(path)
        try:
            fileobj = open(path, "rb")
        except OSError as e:
            raise ReadError(f"cannot open file: {e.strerror or e}", str(path)) from e

        try:
            header = _read_header(fileobj, path)
            records = _read_descriptors(fileobj, path, header.number_of_records)
        except BaseException:
            fileobj.close()
            raise

        logger.debug(
            f"Opened {path}: '{header.display_name}' "
            f"({header.get_type_creator()}), {len(records)} records"
        )
        return cls(path, fileobj, header, records)

    def close(self) -> None:
        """Close the file and drop the descriptor table. Safe to repeat."""
        if self._file is not None:
            self._file.close()
            self._file = None
            self.records = ()
            logger.debug(f"Closed {self.path}")

    @property
    def closed(self) -> bool:
        return self._file is None

    def __enter__(self) -> "PalmDatabase":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"{len(self.records)} records"
        return f"PalmDatabase({str(self.path)!r}, {state})"

    # =========================================================================
    # Encoding
    # =========================================================================

    def set_encoding(self, encoding: Union[str, TextEncoding]) -> None:
        """
        Select the source encoding for text in this database.

        The header name is converted to UTF-8 from its raw bytes, so
        selecting an encoding again never converts it twice.

        Raises:
            UnknownEncodingError: If the name is not a known encoding
            EncodingError: If the name cannot be converted
        """
        encoding = lookup_encoding(encoding)
        name = lz77.convert_text(self._raw_name, encoding).payload
        self.encoding = encoding
        self.header.name = name
        logger.debug(f"Source encoding set to {encoding.value}")

    # =========================================================================
    # Record Loading
    # =========================================================================

    @property
    def number_of_records(self) -> int:
        return len(self.records)

    def _require_open(self) -> BinaryIO:
        if self._file is None:
            raise ReadError("database is closed", str(self.path))
        return self._file

    def _check_index(self, index: int) -> None:
        if not self.records:
            raise ReadError("database has no records", str(self.path))
        if not 0 <= index < len(self.records):
            raise InvalidArgumentError(
                f"record index {index} out of range "
                f"(database has {len(self.records)} records)"
            )

    def record_size(self, index: int) -> int:
        """
        Compute the byte length of record ``index`` without reading it.

        Raises:
            ReadError: If the database has no records or is closed
            InvalidArgumentError: If the index is out of range
            CorruptDataError: If the offsets would give a negative length
        """
        f = self._require_open()
        self._check_index(index)

        start = self.records[index].offset
        if index == len(self.records) - 1:
            try:
                end = f.seek(0, io.SEEK_END)
            except OSError as e:
                raise ReadError(f"cannot seek to end of file: {e}", str(self.path)) from e
        else:
            end = self.records[index + 1].offset

        if end < start:
            raise CorruptDataError(index, start, end)
        return end - start

    def load_record(self, index: int) -> RecordBuffer:
        """
        Read the raw bytes of record ``index``.

        Args:
            index: Record number, 0 to number_of_records - 1

        Returns:
            RecordBuffer with the record data

        Raises:
            ReadError: On seek failure, short read, or an empty database
            InvalidArgumentError: If the index is out of range
            CorruptDataError: If the descriptor offsets are out of order
            AllocationError: If the buffer cannot be allocated
        """
        length = self.record_size(index)
        offset = self.records[index].offset
        f = self._require_open()

        try:
            buf = bytearray(length)
        except MemoryError as e:
            raise AllocationError(
                f"cannot allocate {length} bytes for record {index}"
            ) from e

        try:
            f.seek(offset)
            got = f.readinto(buf)
        except OSError as e:
            raise ReadError(
                f"cannot read record {index} at offset 0x{offset:X}: {e}",
                str(self.path),
            ) from e

        if got is None or got < length:
            raise ReadError(
                f"short read for record {index}: expected {length} bytes "
                f"at offset 0x{offset:X}, got {got or 0}",
                str(self.path),
            )

        logger.debug(f"Loaded record {index}: {length} bytes at 0x{offset:X}")
        return RecordBuffer.raw(buf)

    def iter_records(self) -> Iterator[RecordBuffer]:
        """Load every record in order."""
        for index in range(len(self.records)):
            yield self.load_record(index)

    # =========================================================================
    # PalmDoc Text
    # =========================================================================

    def read_text_header(self) -> TextHeader:
        """
        Decode the PalmDoc text header from record 0.

        Raises:
            ReadError: If record 0 cannot be read or is under 16 bytes
        """
        record = self.load_record(0)
        if record.size < PDB_TEXT_HEADER_SIZE:
            raise ReadError(
                f"record 0 too short for text header: {record.size} bytes",
                str(self.path),
            )
        header = TextHeader.from_bytes(record.payload)
        if header.record_count != len(self.records) - 1:
            logger.warning(
                f"Text header lists {header.record_count} text records, "
                f"database has {len(self.records) - 1}"
            )
        return header

    def decompress(
        self,
        buffer: RecordBuffer,
        compression: Union[Compression, int] = Compression.LZ77,
    ) -> RecordBuffer:
        """
        Decode a loaded text record and convert it to UTF-8.

        LZ77 records are expanded first; uncompressed records go straight
        through the encoding conversion. Either way the result carries a
        trailing zero byte not counted in its size.

        Raises:
            InvalidArgumentError: For an unknown compression mode
            AllocationError: If a buffer cannot be allocated
            EncodingError: If the text cannot be converted
        """
        if compression == Compression.LZ77:
            return lz77.decompress(buffer.payload, self.encoding)
        if compression == Compression.NONE:
            return lz77.convert_text(buffer.payload, self.encoding)
        raise InvalidArgumentError(f"unsupported compression mode {compression}")

    def read_text_record(self, index: int) -> RecordBuffer:
        """
        Load record ``index`` and decode it as the text header declares.

        Raises:
            InvalidArgumentError: For record 0, which holds the text header
        """
        if index == 0:
            raise InvalidArgumentError("record 0 holds the text header, not text")
        text_header = self.read_text_header()
        return self.decompress(self.load_record(index), text_header.compression)

    def iter_text_records(self) -> Iterator[RecordBuffer]:
        """Decode text records 1 to number_of_records - 1 in order."""
        text_header = self.read_text_header()
        for index in range(1, len(self.records)):
            yield self.decompress(self.load_record(index), text_header.compression)


# =============================================================================
# Open-time Readers
# =============================================================================

def _read_exact(fileobj: BinaryIO, size: int, path: Path, what: str) -> bytes:
    try:
        data = fileobj.read(size)
    except OSError as e:
        raise ReadError(f"cannot read {what}: {e}", str(path)) from e
    if len(data) < size:
        raise ReadError(
            f"truncated {what}: expected {size} bytes, got {len(data)}",
            str(path),
        )
    return data


def _read_header(fileobj: BinaryIO, path: Path) -> PDBHeader:
    data = _read_exact(fileobj, PDB_HEADER_SIZE, path, "header")
    header = PDBHeader.from_bytes(data)
    logger.debug(f"Header: {header}")
    return header


def _read_descriptors(
    fileobj: BinaryIO, path: Path, count: int
) -> tuple[RecordDescriptor, ...]:
    size = count * PDB_RECORD_DESCRIPTOR_SIZE
    try:
        data = _read_exact(fileobj, size, path, "record list")
        records = tuple(
            RecordDescriptor.from_bytes(data, i * PDB_RECORD_DESCRIPTOR_SIZE)
            for i in range(count)
        )
    except MemoryError as e:
        raise AllocationError(f"cannot allocate {count} record descriptors") from e
    return records


def open_database(path: Union[str, os.PathLike]) -> PalmDatabase:
    """
    Open a PDB file.

    Convenience wrapper around ``PalmDatabase.open()``.
    """
    return PalmDatabase.open(path)
