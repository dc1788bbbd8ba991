"""
palm_pdb - Palm OS Database Reader
==================================

This package decodes Palm OS Database (PDB) files, the container format
used by Palm handhelds for application data and PalmDoc e-books.

Main Components
---------------
- **pdb**: Header, record descriptor table, record loading and the
  PalmDoc LZ77 decompressor
- **encoding**: Conversion of device text encodings to UTF-8
- **cli**: The ``pdbdump`` inspection tool

Quick Start
-----------
    >>> from palm_pdb import PalmDatabase
    >>> with PalmDatabase.open("book.pdb") as db:
    ...     db.set_encoding("cp1252")
    ...     header = db.read_text_header()
    ...     text = db.read_text_record(1).payload.decode("utf-8")

Or use the command-line tool:
    $ pdbdump -s -l book.pdb
    $ pdbdump -e cp1252 -r 1 -d book.pdb

Copyright (c) 2026 palm-pdb Contributors
Licensed under the GNU Lesser General Public License v2.1 or later.
"""

__version__ = "1.0.0"

from palm_pdb.errors import (
    PalmDBError,
    ReadError,
    AllocationError,
    InvalidArgumentError,
    CorruptDataError,
    EncodingError,
    UnknownEncodingError,
)

from palm_pdb.encoding import (
    TextEncoding,
    lookup_encoding,
    list_encodings,
)

from palm_pdb.pdb import (
    PalmDatabase,
    open_database,
    PDBHeader,
    RecordDescriptor,
    TextHeader,
    RecordBuffer,
    Compression,
    RecordAttribute,
    FileAttribute,
)

__all__ = [
    "__version__",
    # Database
    "PalmDatabase",
    "open_database",
    "PDBHeader",
    "RecordDescriptor",
    "TextHeader",
    "RecordBuffer",
    "Compression",
    "RecordAttribute",
    "FileAttribute",
    # Encoding
    "TextEncoding",
    "lookup_encoding",
    "list_encodings",
    # Exception hierarchy
    "PalmDBError",
    "ReadError",
    "AllocationError",
    "InvalidArgumentError",
    "CorruptDataError",
    "EncodingError",
    "UnknownEncodingError",
]
