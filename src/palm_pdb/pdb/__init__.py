"""
Palm OS Database (PDB) Handling
===============================

This package reads Palm OS Database files: the fixed database header, the
record descriptor table, individual records, and PalmDoc text records in
either uncompressed or LZ77-compressed form.

This package provides:
- **PalmDatabase**: Open a .pdb file and load records on demand
- **Record types**: PDBHeader, RecordDescriptor, TextHeader, RecordBuffer
- **lz77**: The PalmDoc LZ77 codec (size pass and expansion pass)

Quick Start
-----------
    >>> from palm_pdb.pdb import PalmDatabase
    >>> with PalmDatabase.open("book.pdb") as db:
    ...     print(db.header.get_type_creator(), db.number_of_records)
    ...     for record in db.iter_text_records():
    ...         print(record.payload.decode("utf-8"))

Reference
---------
- PalmDoc format: https://wiki.mobileread.com/wiki/PalmDOC
"""

from palm_pdb.pdb.records import (
    # Constants
    PDB_NAME_SIZE,
    PDB_HEADER_SIZE,
    PDB_RECORD_DESCRIPTOR_SIZE,
    PDB_TEXT_HEADER_SIZE,
    PALM_EPOCH_OFFSET,
    # Enums
    FileAttribute,
    RecordAttribute,
    Compression,
    # Data structures
    PDBHeader,
    RecordDescriptor,
    TextHeader,
    RecordBuffer,
    palm_time_to_datetime,
)

from palm_pdb.pdb.lz77 import (
    decompressed_size,
    expand,
    decompress,
    convert_text,
)

from palm_pdb.pdb.database import (
    PalmDatabase,
    open_database,
)

__all__ = [
    # Constants
    "PDB_NAME_SIZE",
    "PDB_HEADER_SIZE",
    "PDB_RECORD_DESCRIPTOR_SIZE",
    "PDB_TEXT_HEADER_SIZE",
    "PALM_EPOCH_OFFSET",
    # Enums
    "FileAttribute",
    "RecordAttribute",
    "Compression",
    # Data structures
    "PDBHeader",
    "RecordDescriptor",
    "TextHeader",
    "RecordBuffer",
    "palm_time_to_datetime",
    # LZ77
    "decompressed_size",
    "expand",
    "decompress",
    "convert_text",
    # Database
    "PalmDatabase",
    "open_database",
]
