"""
Database Reader and Writer Tests
================================

Reader tests run against images built by hand with struct (see the
pack_database fixture), so they do not depend on the writer. Writer tests
check the file layout directly and then read the result back.

Test Categories
---------------
1. Reader: acceptance, chained lists, format and truncation errors
2. Writer: layout, header patching, encoding failures, short writes
3. Files: atomic replacement on disk
"""

import dataclasses
import io
import logging
import struct
from datetime import datetime, timezone

import pytest

from mathpad_tools.config import ToolConfig
from mathpad_tools.db import (
    CategoryTable,
    DatabaseReader,
    DatabaseWriter,
    MathPadDatabase,
    Record,
    build_database,
    parse_database,
    parse_database_file,
    write_database,
    write_database_file,
)
from mathpad_tools.db.records import to_palm_time
from mathpad_tools.errors import DatabaseFormatError, DatabaseIOError

WHEN = datetime(2004, 3, 1, 9, 30, tzinfo=timezone.utc)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def two_record_image(pack_database) -> bytes:
    """Two records, the second filed under Finance and secret."""
    return pack_database(
        [(2, 1, b"Tip\nbill * 0.15"), (4, 0, b"Loan\np = 1200 * 0.05 / 12")],
        attributes=[0x00, 0x11],
        labels=("Unfiled", "Finance"),
    )


# =============================================================================
# Reader Tests
# =============================================================================

class TestReader:
    """Tests for DatabaseReader and parse_database."""

    def test_open(self, two_record_image):
        reader = DatabaseReader(io.BytesIO(two_record_image))
        header, categories = reader.open()
        assert header.type_tag == b"Data"
        assert header.creator == b"MthP"
        assert header.version == 1
        assert categories.label(1) == "Finance"

    def test_records(self, two_record_image):
        database = parse_database(two_record_image)
        assert len(database.records) == 2
        assert database.records[0] == Record(
            category=0, secret=False, places=2, strip_zeros=True, text="Tip\nbill * 0.15"
        )
        assert database.records[1] == Record(
            category=1, secret=True, places=4, strip_zeros=False,
            text="Loan\np = 1200 * 0.05 / 12",
        )

    def test_iter_records_yields_entries(self, two_record_image):
        reader = DatabaseReader(io.BytesIO(two_record_image))
        header, _ = reader.open()
        entries = [entry for entry, _ in reader.iter_records(header)]
        assert [entry.category for entry in entries] == [0, 1]
        assert entries[0].offset < entries[1].offset

    def test_empty_database(self, pack_database):
        database = parse_database(pack_database([]))
        assert len(database.records) == 0

    def test_chained_lists(self, pack_database):
        """Entries of every list in the chain are read, in chain order."""
        image = pack_database(
            [(14, 1, b"One"), (14, 1, b"Two"), (14, 1, b"Three")],
            lists=[1, 2],
        )
        database = parse_database(image)
        assert database.records.titles() == ["One", "Two", "Three"]

    def test_empty_list_in_chain(self, pack_database):
        image = pack_database([(14, 1, b"Only")], lists=[0, 1])
        assert parse_database(image).records.titles() == ["Only"]

    def test_text_without_terminator_byte_kept(self, pack_database):
        """The NUL ends the text and is not part of it."""
        database = parse_database(pack_database([(14, 1, b"a\nb\n")]))
        assert database.records[0].text == "a\nb\n"

    def test_latin1_text(self, pack_database):
        database = parse_database(pack_database([(14, 1, b"caf\xe9")]))
        assert database.records[0].text == "caf\xe9"

    def test_configured_encoding(self, pack_database):
        image = pack_database([(14, 1, b"\x80 100")])
        database = parse_database(image, ToolConfig(text_encoding="cp1252"))
        assert database.records[0].text == "€ 100"
        assert database.encoding == "cp1252"


class TestReaderErrors:
    """Tests for rejected and damaged files."""

    def test_wrong_type(self, pack_database):
        with pytest.raises(DatabaseFormatError, match="Not a MathPad database"):
            parse_database(pack_database([], type_tag=b"DATA"))

    def test_wrong_creator(self, pack_database):
        with pytest.raises(DatabaseFormatError):
            parse_database(pack_database([], creator=b"memo"))

    def test_wrong_version(self, pack_database):
        with pytest.raises(DatabaseFormatError, match="version 2"):
            parse_database(pack_database([], version=2))

    def test_truncated_header(self, pack_database):
        with pytest.raises(DatabaseIOError) as exc_info:
            parse_database(pack_database([])[:50])
        assert exc_info.value.offset == 0
        assert exc_info.value.expected == 72
        assert exc_info.value.actual == 50

    def test_truncated_app_info(self, pack_database):
        with pytest.raises(DatabaseIOError, match="app info"):
            parse_database(pack_database([])[:200])

    def test_truncated_entries(self, pack_database):
        image = bytearray(pack_database([(14, 1, b"A")]))
        # Claim far more entries than the file holds
        struct.pack_into(">H", image, 72 + 4, 5000)
        with pytest.raises(DatabaseIOError, match="record entries"):
            parse_database(bytes(image))

    def test_unterminated_text(self, pack_database):
        image = pack_database([(14, 1, b"Never ends")])
        with pytest.raises(DatabaseIOError, match="Unterminated"):
            parse_database(image[:-1])

    def test_record_offset_past_end(self, pack_database):
        image = bytearray(pack_database([(14, 1, b"A")]))
        struct.pack_into(">I", image, 72 + 6, len(image) + 10)
        with pytest.raises(DatabaseIOError):
            parse_database(bytes(image))

    def test_io_error_is_os_error(self, pack_database):
        with pytest.raises(OSError):
            parse_database(pack_database([])[:10])

    def test_chain_loop(self, pack_database):
        image = bytearray(pack_database([(14, 1, b"A")]))
        struct.pack_into(">I", image, 72, 72)
        with pytest.raises(DatabaseFormatError, match="loops"):
            parse_database(bytes(image))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_database_file(tmp_path / "missing.pdb")


# =============================================================================
# Writer Tests
# =============================================================================

class TestWriter:
    """Tests for DatabaseWriter and build_database."""

    def test_layout(self, sample_database):
        data = build_database(sample_database, WHEN)
        records = len(sample_database.records)
        app_info_offset = 72 + 6 + 8 * records

        assert data[60:68] == b"DataMthP"
        assert struct.unpack_from(">I", data, 52)[0] == app_info_offset
        assert struct.unpack_from(">I", data, 56)[0] == 0
        assert struct.unpack_from(">IH", data, 72) == (0, records)

        first_offset, attributes, unique_id = struct.unpack_from(">IB3s", data, 78)
        assert first_offset == app_info_offset + 310
        assert attributes == 0x00
        assert unique_id == b"\x00\x00\x00"
        assert data[first_offset:first_offset + 2] == b"\x02\x01"

    def test_entry_attributes(self, sample_database):
        data = build_database(sample_database, WHEN)
        _, attributes, _ = struct.unpack_from(">IB3s", data, 78 + 8)
        assert attributes == 0x11

    def test_records_are_contiguous(self, sample_database):
        data = build_database(sample_database, WHEN)
        offsets = [struct.unpack_from(">I", data, 78 + 8 * i)[0] for i in range(3)]
        sizes = [record.get_size() for record in sample_database.records]
        assert offsets[1] == offsets[0] + sizes[0]
        assert offsets[2] == offsets[1] + sizes[1]
        assert len(data) == offsets[2] + sizes[2]

    def test_header_dates(self, sample_database):
        data = build_database(sample_database, WHEN)
        stamp = to_palm_time(WHEN)
        assert struct.unpack_from(">III", data, 36) == (stamp, stamp, stamp)

    def test_header_updated_in_place(self, sample_database):
        sample_database.header.sort_info_offset = 999
        build_database(sample_database, WHEN)
        assert sample_database.header.app_info_offset == 72 + 6 + 8 * 3
        assert sample_database.header.sort_info_offset == 0
        assert sample_database.header.modified == WHEN

    def test_returns_size(self, sample_database):
        stream = io.BytesIO()
        size = write_database(sample_database, stream, WHEN)
        assert size == len(stream.getvalue())

    def test_round_trip(self, sample_database):
        database = parse_database(build_database(sample_database, WHEN))
        assert list(database.records) == list(sample_database.records)
        assert database.categories.labels == sample_database.categories.labels
        assert database.categories.unique_ids == sample_database.categories.unique_ids

    def test_preserves_app_data(self, sample_database):
        sample_database.categories.app_data = bytes(range(1, 35))
        database = parse_database(build_database(sample_database, WHEN))
        assert database.categories.app_data == bytes(range(1, 35))

    def test_empty_database(self):
        data = build_database(MathPadDatabase(), WHEN)
        assert len(data) == 72 + 6 + 310
        assert len(parse_database(data).records) == 0

    def test_unencodable_record_writes_nothing(self, sample_database):
        sample_database.records.append(Record(text="Price\n€ 100"))
        stream = io.BytesIO()
        with pytest.raises(DatabaseFormatError):
            write_database(sample_database, stream, WHEN)
        assert stream.getvalue() == b""

    def test_short_write(self, sample_database):
        class ShortStream(io.BytesIO):
            def write(self, data):
                super().write(data)
                return max(len(data) - 1, 0)

        with pytest.raises(DatabaseIOError, match="Error writing database header"):
            DatabaseWriter(ShortStream()).write(sample_database, WHEN)


# =============================================================================
# File Tests
# =============================================================================

class TestFiles:
    """Tests for reading and writing database files."""

    def test_write_and_read(self, tmp_path, sample_database):
        path = tmp_path / "MathPadDB.pdb"
        size = write_database_file(sample_database, path, WHEN)
        assert path.stat().st_size == size
        assert parse_database_file(path).records.titles() == ["Tip", "Loan payment", "Area"]

    def test_replaces_existing_file(self, tmp_path, sample_database):
        path = tmp_path / "MathPadDB.pdb"
        path.write_bytes(b"old contents")
        write_database_file(sample_database, path, WHEN)
        assert path.read_bytes()[60:68] == b"DataMthP"
        assert [p.name for p in tmp_path.iterdir()] == ["MathPadDB.pdb"]

    def test_failed_write_keeps_original(self, tmp_path, sample_database):
        path = tmp_path / "MathPadDB.pdb"
        path.write_bytes(b"old contents")
        sample_database.records.append(Record(text="a\x00b"))
        with pytest.raises(DatabaseFormatError):
            write_database_file(sample_database, path, WHEN)
        assert path.read_bytes() == b"old contents"
        assert [p.name for p in tmp_path.iterdir()] == ["MathPadDB.pdb"]

    def test_sample_file_fixture(self, sample_db_file):
        with parse_database_file(sample_db_file) as database:
            assert len(database.records) == 3
            assert database.categories.label(1) == "Finance"


# =============================================================================
# Category Label Encoding Tests
# =============================================================================

class TestCategoryLabelEncoding:
    """Tests for category labels in the database's character set."""

    def test_unencodable_label_writes_nothing(self):
        database = MathPadDatabase(categories=CategoryTable(), encoding="ascii")
        database.categories.resolve("Café")
        stream = io.BytesIO()
        with pytest.raises(DatabaseFormatError, match="Café"):
            write_database(database, stream, WHEN)
        assert stream.getvalue() == b""

    def test_multi_byte_label_round_trip(self):
        database = MathPadDatabase(categories=CategoryTable(), encoding="utf-8")
        index = database.categories.resolve("\xc0" * 8)
        database.records.append(Record(category=index, text="Sum\n1+1"))

        reloaded = parse_database(build_database(database, WHEN),
                                  ToolConfig(text_encoding="utf-8"))
        assert reloaded.categories.label(index) == "\xc0" * 7
        assert reloaded.records[0].category == index


# =============================================================================
# Failure Safety Tests
# =============================================================================

class TestFailedWrites:
    """Tests for state left behind by a failed write."""

    def test_failed_patch_keeps_header(self, sample_database):
        class FailingPatchStream(io.BytesIO):
            """Accepts pass 1, then comes up short rewriting the header."""

            header_writes = 0

            def write(self, data):
                if self.tell() == 0:
                    self.header_writes += 1
                    if self.header_writes == 2:
                        return 0
                return super().write(data)

        before = dataclasses.replace(sample_database.header)
        with pytest.raises(DatabaseIOError, match="database header"):
            DatabaseWriter(FailingPatchStream()).write(sample_database, WHEN)
        assert sample_database.header == before

    def test_existing_file_keeps_mode(self, tmp_path, sample_database):
        path = tmp_path / "MathPadDB.pdb"
        path.write_bytes(b"old contents")
        path.chmod(0o644)
        write_database_file(sample_database, path, WHEN)
        assert path.stat().st_mode & 0o777 == 0o644


# =============================================================================
# Unnamed Category Tests
# =============================================================================

class TestUnnamedCategories:
    """Tests for records filed under a slot with no label."""

    def test_loaded_as_unfiled(self, pack_database, caplog):
        image = pack_database([(14, 1, b"Orphan\n1+1")], attributes=[0x15])
        with caplog.at_level(logging.WARNING):
            database = parse_database(image)
        assert database.records[0].category == 0
        assert database.records[0].secret is True
        assert "unnamed category 5" in caplog.text
