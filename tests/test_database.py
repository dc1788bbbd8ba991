"""
PalmDatabase Tests
==================

Tests for opening PDB files, sizing and loading records, and decoding
PalmDoc text through palm_pdb.pdb.database.

Test Categories
---------------
1. Opening: header and descriptor table, truncated and missing files
2. Record sizing: offset differences and the end-of-file rule
3. Record loading: index checks, short reads, empty databases
4. Text: text header, pass-through and LZ77 records
5. Encoding and lifecycle
"""

from pathlib import Path
from unittest import mock

import pytest

from palm_pdb.errors import (
    AllocationError,
    CorruptDataError,
    EncodingError,
    InvalidArgumentError,
    PalmDBError,
    ReadError,
    UnknownEncodingError,
)
from palm_pdb.encoding import TextEncoding
from palm_pdb.pdb import (
    PDB_HEADER_SIZE,
    Compression,
    PalmDatabase,
    RecordBuffer,
    open_database,
)
from palm_pdb.pdb import database as database_module


@pytest.fixture
def opened_files(monkeypatch) -> list:
    """
    Fixture: record every file object PalmDatabase.open() creates.

    Returns the list the opened files are appended to.
    """
    opened = []
    real_open = open

    def tracking_open(*args, **kwargs):
        f = real_open(*args, **kwargs)
        opened.append(f)
        return f

    monkeypatch.setattr(database_module, "open", tracking_open, raising=False)
    return opened


def _no_memory(*args, **kwargs):
    raise MemoryError


# =============================================================================
# Opening
# =============================================================================

class TestOpen:
    """Tests for PalmDatabase.open()."""

    @pytest.mark.parametrize("count", [0, 1, 3])
    def test_record_count(self, write_pdb, pdb_builder, count: int):
        """The descriptor table holds exactly number_of_records entries."""
        path = write_pdb(pdb_builder([b"x" * (i + 1) for i in range(count)]))

        with PalmDatabase.open(path) as db:
            assert db.header.number_of_records == count
            assert db.number_of_records == count
            assert len(db.records) == count

    def test_header_fields(self, plain_doc: Path):
        with PalmDatabase.open(plain_doc) as db:
            assert db.header.name == b"Test Document"
            assert db.header.get_type_creator() == "TEXt/REAd"
            assert db.path == plain_doc

    def test_descriptor_order(self, write_pdb, pdb_builder):
        """Descriptors keep file order and decode their unique ids."""
        path = write_pdb(pdb_builder([b"aa", b"bbb", b"c"], gap=0))

        with PalmDatabase.open(path) as db:
            assert [r.offset for r in db.records] == [102, 104, 107]
            assert [r.unique_id for r in db.records] == [1, 2, 3]

    def test_open_accepts_str(self, plain_doc: Path):
        with open_database(str(plain_doc)) as db:
            assert db.number_of_records == 3

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ReadError) as exc_info:
            PalmDatabase.open(tmp_path / "missing.pdb")
        assert "missing.pdb" in str(exc_info.value)

    def test_truncated_header(self, write_pdb, pdb_builder):
        path = write_pdb(pdb_builder([b"abc"])[:PDB_HEADER_SIZE - 1])
        with pytest.raises(ReadError, match="truncated header"):
            PalmDatabase.open(path)

    def test_truncated_record_list(self, write_pdb, pdb_builder):
        """A header promising more descriptors than the file holds."""
        path = write_pdb(pdb_builder([b"a", b"b"])[:PDB_HEADER_SIZE + 12])
        with pytest.raises(ReadError, match="truncated record list"):
            PalmDatabase.open(path)

    @pytest.mark.parametrize("length", [10, PDB_HEADER_SIZE + 4])
    def test_failed_open_closes_file(self, write_pdb, pdb_builder, opened_files, length: int):
        """No file object is left open when open() raises."""
        path = write_pdb(pdb_builder([b"a", b"b"])[:length])
        with pytest.raises(ReadError):
            PalmDatabase.open(path)
        assert len(opened_files) == 1
        assert opened_files[0].closed

    def test_descriptor_allocation_failure(self, write_pdb, pdb_builder, opened_files,
                                           monkeypatch):
        """MemoryError building the record list closes the file."""
        path = write_pdb(pdb_builder([b"a", b"b"]))

        class FailingDescriptor:
            @classmethod
            def from_bytes(cls, data, offset=0):
                raise MemoryError

        monkeypatch.setattr(database_module, "RecordDescriptor", FailingDescriptor)

        with pytest.raises(AllocationError) as exc_info:
            PalmDatabase.open(path)
        assert isinstance(exc_info.value.__cause__, MemoryError)
        assert len(opened_files) == 1
        assert opened_files[0].closed


# =============================================================================
# Record Sizing
# =============================================================================

class TestRecordSize:
    """Tests for record_size()."""

    def test_offset_differences(self, write_pdb, pdb_builder):
        """Offsets 94 and 150 in a 200-byte file give 56 and 50 bytes."""
        path = write_pdb(pdb_builder([b"a" * 56, b"b" * 50], gap=0))
        assert path.stat().st_size == 200

        with PalmDatabase.open(path) as db:
            assert [r.offset for r in db.records] == [94, 150]
            assert db.record_size(0) == 56
            assert db.record_size(1) == 50

    def test_equal_offsets_give_empty_record(self, write_pdb, pdb_builder):
        path = write_pdb(pdb_builder([b"", b"data"]))

        with PalmDatabase.open(path) as db:
            assert db.record_size(0) == 0
            buf = db.load_record(0)
            assert buf.size == 0
            assert buf.data == b""

    def test_decreasing_offsets(self, write_pdb, pdb_builder):
        path = write_pdb(pdb_builder([b"a" * 8, b"b" * 8], offsets=[120, 100]))

        with PalmDatabase.open(path) as db:
            with pytest.raises(CorruptDataError) as exc_info:
                db.record_size(0)
            assert exc_info.value.index == 0
            assert exc_info.value.start == 120
            assert exc_info.value.end == 100

            with pytest.raises(CorruptDataError):
                db.load_record(0)

    def test_last_offset_beyond_eof(self, write_pdb, pdb_builder):
        path = write_pdb(pdb_builder([b"abc"], offsets=[5000]))

        with PalmDatabase.open(path) as db:
            with pytest.raises(CorruptDataError):
                db.load_record(0)

    def test_corrupt_is_library_error(self):
        assert issubclass(CorruptDataError, PalmDBError)


# =============================================================================
# Record Loading
# =============================================================================

class TestLoadRecord:
    """Tests for load_record()."""

    def test_load_each_record(self, write_pdb, pdb_builder):
        records = [b"first", b"second record", b"\x00\xff\x80"]
        path = write_pdb(pdb_builder(records))

        with PalmDatabase.open(path) as db:
            for index, expected in enumerate(records):
                buf = db.load_record(index)
                assert isinstance(buf, RecordBuffer)
                assert buf.data == expected
                assert buf.size == len(expected)

    def test_iter_records(self, write_pdb, pdb_builder):
        records = [b"one", b"two", b"three"]
        path = write_pdb(pdb_builder(records))

        with PalmDatabase.open(path) as db:
            assert [bytes(buf) for buf in db.iter_records()] == records

    @pytest.mark.parametrize("index", [3, 100, -1])
    def test_index_out_of_range(self, write_pdb, pdb_builder, index: int):
        """Bad indices are refused before any file access."""
        path = write_pdb(pdb_builder([b"a", b"b", b"c"]))

        with PalmDatabase.open(path) as db:
            spy = mock.MagicMock(wraps=db._file)
            db._file = spy

            with pytest.raises(InvalidArgumentError):
                db.load_record(index)

            spy.seek.assert_not_called()
            spy.read.assert_not_called()
            spy.readinto.assert_not_called()

    def test_empty_database(self, write_pdb, pdb_builder):
        path = write_pdb(pdb_builder([]))

        with PalmDatabase.open(path) as db:
            with pytest.raises(ReadError, match="no records"):
                db.load_record(0)

    def test_short_read(self, write_pdb, pdb_builder):
        """A middle record whose next offset lies past EOF is a short read."""
        data = pdb_builder([b"aaaa", b"bbbb", b"cc"])
        path = write_pdb(data[:-4])

        with PalmDatabase.open(path) as db:
            assert db.load_record(0).data == b"aaaa"
            with pytest.raises(ReadError, match="short read"):
                db.load_record(1)

    def test_allocation_failure(self, plain_doc: Path, monkeypatch):
        monkeypatch.setattr(database_module, "bytearray", _no_memory, raising=False)

        with PalmDatabase.open(plain_doc) as db:
            with pytest.raises(AllocationError, match="record 1"):
                db.load_record(1)


# =============================================================================
# PalmDoc Text
# =============================================================================

class TestTextRecords:
    """Tests for the text header and text record decoding."""

    def test_read_text_header(self, lz77_doc: Path):
        with PalmDatabase.open(lz77_doc) as db:
            header = db.read_text_header()

        assert header.compression is Compression.LZ77
        assert header.record_count == 2
        assert header.record_size == 4096

    def test_text_header_too_short(self, write_pdb, pdb_builder):
        path = write_pdb(pdb_builder([b"\x00\x02" + b"\x00" * 10, b"text"]))

        with PalmDatabase.open(path) as db:
            with pytest.raises(ReadError, match="too short"):
                db.read_text_header()

    def test_record_count_mismatch_warns(self, write_pdb, palmdoc_builder, caplog):
        """A text header disagreeing with the database is logged, not fatal."""
        data = palmdoc_builder([b"a"])
        # Patch record_count (offset 8 in record 0) to 5
        start = PDB_HEADER_SIZE + 2 * 8 + 2
        data = data[:start + 8] + b"\x00\x05" + data[start + 10:]
        path = write_pdb(data)

        with PalmDatabase.open(path) as db:
            header = db.read_text_header()

        assert header.record_count == 5
        assert "lists 5 text records" in caplog.text

    def test_uncompressed_pass_through(self, plain_doc: Path):
        """Without compression the decoded text equals the raw record."""
        with PalmDatabase.open(plain_doc) as db:
            raw = db.load_record(1)
            text = db.decompress(raw, Compression.NONE)

        assert text.payload == raw.data == b"Hello, "
        assert text.size == raw.size
        assert text.data.endswith(b"\x00")

    def test_read_text_record_uncompressed(self, plain_doc: Path):
        with PalmDatabase.open(plain_doc) as db:
            assert db.read_text_record(2).payload == b"world!"

    def test_pass_through_keeps_nul_bytes(self, write_pdb, palmdoc_builder):
        """Uncompressed text is returned whole, embedded NULs included."""
        path = write_pdb(palmdoc_builder([b"ab\x00cd"]))

        with PalmDatabase.open(path) as db:
            raw = db.load_record(1)
            text = db.decompress(raw, Compression.NONE)

        assert text.payload == raw.data == b"ab\x00cd"
        assert text.size == 5
        assert text.data == b"ab\x00cd\x00"

    def test_lz77_keeps_nul_literal(self, write_pdb, palmdoc_builder):
        """A 0x00 literal does not end the decoded text."""
        path = write_pdb(palmdoc_builder([b"ab\x00c" + b"\x80\x20"], Compression.LZ77))

        with PalmDatabase.open(path) as db:
            buf = db.read_text_record(1)

        assert buf.payload == b"ab\x00cab\x00"

    def test_text_record_zero_rejected(self, lz77_doc: Path):
        """Record 0 is the text header, not a text record."""
        with PalmDatabase.open(lz77_doc) as db:
            with pytest.raises(InvalidArgumentError, match="record 0"):
                db.read_text_record(0)

    def test_read_text_record_lz77(self, lz77_doc: Path):
        with PalmDatabase.open(lz77_doc) as db:
            buf = db.read_text_record(1)

        assert buf.payload == b"abcabcabc"
        assert buf.size == 9
        assert buf.data == b"abcabcabc\x00"

    def test_iter_text_records(self, lz77_doc: Path):
        with PalmDatabase.open(lz77_doc) as db:
            texts = [buf.payload for buf in db.iter_text_records()]

        assert texts == [b"abcabcabc", b"Hi world"]

    def test_unknown_compression(self, plain_doc: Path):
        with PalmDatabase.open(plain_doc) as db:
            with pytest.raises(InvalidArgumentError):
                db.decompress(db.load_record(1), 17480)

    def test_decoded_with_encoding(self, write_pdb, palmdoc_builder):
        path = write_pdb(palmdoc_builder([b"\x80 5"]))

        with PalmDatabase.open(path) as db:
            db.set_encoding("cp1252")
            buf = db.read_text_record(1)

        assert buf.payload == "€ 5".encode("utf-8")
        assert buf.size == 5

    def test_lz77_decoded_with_encoding(self, write_pdb, palmdoc_builder):
        """Expansion runs before conversion."""
        path = write_pdb(palmdoc_builder([b"\x01\xe9\x80\x08"], Compression.LZ77))

        with PalmDatabase.open(path) as db:
            db.set_encoding("iso-8859-1")
            buf = db.read_text_record(1)

        assert buf.payload == "éééé".encode("utf-8")


# =============================================================================
# Encoding and Lifecycle
# =============================================================================

class TestEncoding:
    """Tests for set_encoding()."""

    def test_default_is_identity(self, plain_doc: Path):
        with PalmDatabase.open(plain_doc) as db:
            assert db.encoding is TextEncoding.NONE

    def test_name_converted_once(self, write_pdb, pdb_builder):
        """Selecting an encoding twice converts from the raw name each time."""
        path = write_pdb(pdb_builder([b"x"], name=b"\x8a\xe8k"))

        with PalmDatabase.open(path) as db:
            db.set_encoding("cp1250")
            assert db.header.name == "Ščk".encode("utf-8")
            db.set_encoding("cp1250")
            assert db.header.name == "Ščk".encode("utf-8")
            assert db.header.display_name == "Ščk"
            assert db.encoding is TextEncoding.CP1250

    def test_unknown_encoding(self, plain_doc: Path):
        with PalmDatabase.open(plain_doc) as db:
            with pytest.raises(UnknownEncodingError):
                db.set_encoding("klingon")
            assert db.encoding is TextEncoding.NONE
            assert db.header.name == b"Test Document"

    def test_unconvertible_name(self, write_pdb, pdb_builder):
        path = write_pdb(pdb_builder([b"x"], name=b"bad\x81"))

        with PalmDatabase.open(path) as db:
            with pytest.raises(EncodingError):
                db.set_encoding("cp1252")


class TestLifecycle:
    """Tests for close() and context management."""

    def test_close_is_idempotent(self, plain_doc: Path):
        db = PalmDatabase.open(plain_doc)
        db.close()
        db.close()

        assert db.closed
        assert db.records == ()

    def test_closed_handle(self, plain_doc: Path):
        db = PalmDatabase.open(plain_doc)
        db.close()

        with pytest.raises(ReadError, match="closed"):
            db.load_record(0)

    def test_context_manager_closes(self, plain_doc: Path):
        with PalmDatabase.open(plain_doc) as db:
            assert not db.closed
        assert db.closed

    def test_repr(self, plain_doc: Path):
        db = PalmDatabase.open(plain_doc)
        assert "3 records" in repr(db)
        db.close()
        assert "closed" in repr(db)
