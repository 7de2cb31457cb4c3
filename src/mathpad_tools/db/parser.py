"""
MathPad Database Reader
=======================

This module reads MathPad backup databases into memory.

DatabaseReader
--------------
The DatabaseReader class works on any seekable binary stream. open()
reads and validates the header and loads the category table;
iter_records() then walks the chain of record lists and yields each record
in file order. Records are located purely through their list entries, so a
damaged record body does not move the records after it, but any short
read ends the whole load.

Usage Examples
--------------
Loading a database file:
    >>> from mathpad_tools.db import parse_database_file
    >>> database = parse_database_file("MathPadDB.pdb")
    >>> for record in database.records:
    ...     print(record.title)

Streaming records without building a store:
    >>> with open("MathPadDB.pdb", "rb") as f:
    ...     reader = DatabaseReader(f)
    ...     header, categories = reader.open()
    ...     for entry, record in reader.iter_records(header):
    ...         print(categories.label(entry.category), record.title)
"""

from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union
import io
import logging

from mathpad_tools.config import DEFAULT_TEXT_ENCODING, ToolConfig
from mathpad_tools.db.categories import APP_INFO_SIZE, UNFILED_CATEGORY, CategoryTable
from mathpad_tools.db.database import MathPadDatabase
from mathpad_tools.db.records import (
    HEADER_SIZE,
    ITEM_HEADER_SIZE,
    RECORD_ENTRY_SIZE,
    RECORD_LIST_SIZE,
    TEXT_TERMINATOR,
    DatabaseHeader,
    Record,
    RecordEntry,
    RecordListHeader,
)
from mathpad_tools.db.store import RecordStore
from mathpad_tools.errors import DatabaseFormatError, DatabaseIOError

# Logger for this module
logger = logging.getLogger(__name__)

# Read size used while scanning for the end of record text
_TEXT_CHUNK = 256


# =============================================================================
# Database Reader
# =============================================================================

class DatabaseReader:
    """
    Reader for MathPad database streams.

    Attributes:
        stream: A seekable binary stream positioned anywhere
        encoding: Character set of record text and category labels
    """

    def __init__(self, stream: BinaryIO, encoding: str = DEFAULT_TEXT_ENCODING) -> None:
        self.stream = stream
        self.encoding = encoding

    # =========================================================================
    # Low-level I/O
    # =========================================================================

    def _read_exact(self, size: int, what: str) -> bytes:
        """Read exactly size bytes or raise DatabaseIOError."""
        offset = self.stream.tell()
        data = self.stream.read(size)
        if len(data) != size:
            raise DatabaseIOError(f"Error reading {what}", offset, size, len(data))
        return data

    def _read_text(self) -> bytes:
        """Read record text up to (not including) its terminator byte."""
        start = self.stream.tell()
        text = bytearray()
        while True:
            chunk = self.stream.read(_TEXT_CHUNK)
            if not chunk:
                raise DatabaseIOError("Unterminated record text", start)
            end = chunk.find(TEXT_TERMINATOR)
            if end >= 0:
                text.extend(chunk[:end])
                return bytes(text)
            text.extend(chunk)

    # =========================================================================
    # Public Interface
    # =========================================================================

    def open(self) -> tuple[DatabaseHeader, CategoryTable]:
        """
        Read the header and category table.

        Returns:
            Tuple of (DatabaseHeader, CategoryTable)

        Raises:
            DatabaseFormatError: If the file is not a supported MathPad database
            DatabaseIOError: If the file is truncated
        """
        self.stream.seek(0)
        header = DatabaseHeader.from_bytes(self._read_exact(HEADER_SIZE, "database header"))
        header.validate()
        logger.debug(
            f"Database '{header.get_display_name()}' version {header.version}, "
            f"app info at {header.app_info_offset}"
        )

        self.stream.seek(header.app_info_offset)
        categories = CategoryTable.from_bytes(
            self._read_exact(APP_INFO_SIZE, "database app info block"),
            encoding=self.encoding,
        )
        return header, categories

    def iter_entries(self, header: DatabaseHeader) -> Iterator[RecordEntry]:
        """
        Walk the record list chain, yielding every entry in order.

        Each list is read completely before any of its entries is yielded,
        so callers may move the stream between entries.

        Raises:
            DatabaseFormatError: If the chain links back on itself
            DatabaseIOError: If a list or its entries are truncated
        """
        list_offset = HEADER_SIZE
        visited = set()
        while True:
            if list_offset in visited:
                raise DatabaseFormatError(f"Record list chain loops back to offset {list_offset}")
            visited.add(list_offset)

            self.stream.seek(list_offset)
            record_list = RecordListHeader.from_bytes(
                self._read_exact(RECORD_LIST_SIZE, "database record list")
            )
            entries = []
            if record_list.num_records > 0:
                data = self._read_exact(
                    record_list.num_records * RECORD_ENTRY_SIZE, "database record entries"
                )
                entries = [
                    RecordEntry.from_bytes(data, i * RECORD_ENTRY_SIZE)
                    for i in range(record_list.num_records)
                ]
            logger.debug(f"Record list at {list_offset}: {len(entries)} entries")

            yield from entries

            list_offset = record_list.next_list_offset
            if not list_offset:
                break

    def iter_records(self, header: DatabaseHeader) -> Iterator[tuple[RecordEntry, Record]]:
        """
        Yield (entry, record) for every record in file order.

        The iterator is single-pass: it repositions the stream as it goes.

        Raises:
            DatabaseIOError: On any short read
        """
        for entry in self.iter_entries(header):
            self.stream.seek(entry.offset)
            item_header = self._read_exact(ITEM_HEADER_SIZE, "database record")
            text = self._read_text()
            record = Record.from_body(entry, item_header, text, self.encoding)
            logger.debug(
                f"Record at {entry.offset}: '{record.title}' "
                f"(category {record.category}, {len(text)} bytes)"
            )
            yield entry, record


# =============================================================================
# Convenience Functions
# =============================================================================

def read_database(stream: BinaryIO, config: Optional[ToolConfig] = None) -> MathPadDatabase:
    """
    Load a complete database from a binary stream.

    Args:
        stream: Seekable binary stream holding the database
        config: Tool configuration (default: ToolConfig())

    Records filed under a category slot that has no name are moved to
    Unfiled, as the handheld shows them.

    Returns:
        A MathPadDatabase with every record loaded

    Raises:
        DatabaseFormatError: If the data is not a supported MathPad database
        DatabaseIOError: If the data is truncated
    """
    config = config or ToolConfig()
    reader = DatabaseReader(stream, encoding=config.text_encoding)
    header, categories = reader.open()

    records = RecordStore()
    for _, record in reader.iter_records(header):
        if not categories.is_occupied(record.category):
            logger.warning(
                f"Record '{record.title}' is filed under unnamed category "
                f"{record.category}; moving it to Unfiled"
            )
            record.category = UNFILED_CATEGORY
        records.append(record)
    logger.info(f"Loaded {len(records)} records from '{header.get_display_name()}'")

    return MathPadDatabase(
        header=header,
        categories=categories,
        records=records,
        encoding=config.text_encoding,
    )


def parse_database(data: bytes, config: Optional[ToolConfig] = None) -> MathPadDatabase:
    """Load a complete database from bytes."""
    return read_database(io.BytesIO(data), config)


def parse_database_file(
    filepath: Union[str, Path],
    config: Optional[ToolConfig] = None,
) -> MathPadDatabase:
    """
    Load a complete database from disk.

    Raises:
        FileNotFoundError: If the file doesn't exist
        DatabaseFormatError: If the file is not a supported MathPad database
        DatabaseIOError: If the file is truncated
    """
    with open(Path(filepath), "rb") as f:
        return read_database(f, config)
