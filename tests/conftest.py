"""
Shared fixtures for palm_pdb tests.

Synthetic PDB files are assembled here from PDBHeader / RecordDescriptor /
TextHeader so that every test controls the exact byte layout.
"""

from pathlib import Path
from typing import Callable, Optional

import pytest

from palm_pdb.pdb import (
    PDB_HEADER_SIZE,
    PDB_RECORD_DESCRIPTOR_SIZE,
    Compression,
    PDBHeader,
    RecordDescriptor,
    TextHeader,
)


def build_pdb(
    records: list[bytes],
    name: bytes = b"Test Document",
    database_type: str = "TEXt",
    creator_id: str = "REAd",
    gap: int = 2,
    offsets: Optional[list[int]] = None,
    attributes: int = 0x40,
) -> bytes:
    """
    Assemble a PDB file image.

    Record data is laid out back to back after the descriptor table and a
    ``gap`` of padding bytes (real files usually carry two). ``offsets``
    overrides the computed descriptor offsets for malformed-file tests.
    """
    header = PDBHeader(
        name=name,
        file_attributes=0x0008,
        version=1,
        creation_date=3029529600,
        modification_date=3029529600,
        database_type=database_type,
        creator_id=creator_id,
        number_of_records=len(records),
    )

    start = PDB_HEADER_SIZE + PDB_RECORD_DESCRIPTOR_SIZE * len(records) + gap
    if offsets is None:
        offsets = []
        position = start
        for data in records:
            offsets.append(position)
            position += len(data)

    result = bytearray(header.to_bytes())
    for index, offset in enumerate(offsets):
        result.extend(
            RecordDescriptor(offset=offset, attributes=attributes, unique_id=index + 1).to_bytes()
        )
    result.extend(b"\x00" * gap)
    for data in records:
        result.extend(data)
    return bytes(result)


def build_palmdoc(
    text_records: list[bytes],
    compression: Compression = Compression.NONE,
    text_size: Optional[int] = None,
    **kwargs,
) -> bytes:
    """Assemble a PalmDoc file: a text header record followed by text records."""
    text_header = TextHeader(
        compression=compression,
        text_size=text_size if text_size is not None else sum(len(r) for r in text_records),
        record_count=len(text_records),
        record_size=4096,
    )
    return build_pdb([text_header.to_bytes()] + list(text_records), **kwargs)


@pytest.fixture
def write_pdb(tmp_path: Path) -> Callable[..., Path]:
    """
    Fixture: write file images to tmp_path.

    Returns a function ``write(data, name="test.pdb") -> Path``.
    """
    def write(data: bytes, name: str = "test.pdb") -> Path:
        path = tmp_path / name
        path.write_bytes(data)
        return path

    return write


@pytest.fixture
def plain_doc(write_pdb) -> Path:
    """An uncompressed PalmDoc with two text records."""
    return write_pdb(build_palmdoc([b"Hello, ", b"world!"]), "plain.pdb")


@pytest.fixture
def lz77_doc(write_pdb) -> Path:
    """
    An LZ77-compressed PalmDoc with two text records.

    Record 1: "abc" + back-reference(distance 3, length 6) -> "abcabcabc"
    Record 2: "Hi" + space pair 0xF7 -> "Hi w", then literal "orld"
    """
    record1 = b"abc\x80\x1b"
    record2 = b"Hi\xf7orld"
    return write_pdb(build_palmdoc([record1, record2], Compression.LZ77), "lz77.pdb")


@pytest.fixture
def pdb_builder() -> Callable[..., bytes]:
    """Fixture: the ``build_pdb`` file image builder."""
    return build_pdb


@pytest.fixture
def palmdoc_builder() -> Callable[..., bytes]:
    """Fixture: the ``build_palmdoc`` file image builder."""
    return build_palmdoc
