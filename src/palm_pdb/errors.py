"""
Palm PDB Error Hierarchy
========================

This module defines the exception hierarchy for the palm_pdb package.
All exceptions inherit from PalmDBError, allowing callers to catch every
library error with a single except clause if desired.

Exception Hierarchy
-------------------
PalmDBError (base)
├── ReadError - short read, seek failure, missing or unreadable file
├── AllocationError - a buffer could not be acquired
├── InvalidArgumentError - out-of-range record index, unknown mode
├── CorruptDataError - descriptor offsets that cannot describe a record
└── EncodingError - text conversion failed
    └── UnknownEncodingError - encoding name not in the known set

The library never prints diagnostics itself. Errors carry enough context
(path, record index, offsets) for the caller to render a useful message.

Copyright (c) 2026 palm-pdb Contributors
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class PalmDBError(Exception):
    """
    Base exception for all palm_pdb errors.

        try:
            with PalmDatabase.open("book.pdb") as db:
                text = db.read_text_record(1)
        except PalmDBError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# I/O and Resource Exceptions
# =============================================================================

class ReadError(PalmDBError):
    """
    Data could not be read from the database file.

    Raised when:
    - The file does not exist or cannot be opened
    - Fewer bytes are available than a structure needs (truncated file)
    - Seeking to a record offset fails
    - The handle has already been closed
    """

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class AllocationError(PalmDBError):
    """
    A buffer for record data could not be acquired.

    Wraps MemoryError so callers see a single failure family for every
    step of loading and decompressing a record.
    """
    pass


class InvalidArgumentError(PalmDBError):
    """
    A caller-supplied argument is outside its valid range.

    Raised for record indices outside [0, number_of_records) and for
    compression modes the decompressor does not understand. No I/O is
    performed before this error is raised.
    """
    pass


class CorruptDataError(PalmDBError):
    """
    The record descriptor table describes an impossible record.

    Record lengths are derived by subtracting adjacent descriptor offsets.
    When an offset is smaller than its predecessor (or the last offset lies
    beyond the end of the file) the subtraction would go negative, so the
    record is refused instead of requesting a bogus read.
    """

    def __init__(self, index: int, start: int, end: int, message: str = ""):
        self.index = index
        self.start = start
        self.end = end
        if not message:
            message = (
                f"record {index}: end offset 0x{end:X} precedes "
                f"start offset 0x{start:X}"
            )
        super().__init__(message)


# =============================================================================
# Encoding Exceptions
# =============================================================================

class EncodingError(PalmDBError):
    """
    Text could not be converted from the source encoding.

    The original codec error, when there is one, is chained as __cause__.
    """
    pass


class UnknownEncodingError(EncodingError):
    """
    Encoding name is not one of the supported source encodings.

    Raised at lookup time, before any conversion is attempted.
    """

    def __init__(self, name: str, known: Optional[list[str]] = None):
        self.name = name
        self.known = known or []
        message = f"unknown encoding '{name}'"
        if self.known:
            message += f" (choose from: {', '.join(self.known)})"
        super().__init__(message)
