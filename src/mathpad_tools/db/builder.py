"""
MathPad Database Writer
=======================

This module serializes an in-memory MathPadDatabase back into the backup
file layout.

Two-Pass Layout
---------------
Record offsets are only known once the records have been written, so the
writer works in two passes over a seekable stream:

Pass 1 (sequential):
    Header placeholder       72 bytes
    Record list header        6 bytes (next list 0, count = records)
    Entry placeholders        8 bytes per record
    App info block          310 bytes (categories + MathPad settings)
    Records                 2 setting bytes + text + NUL, per record

Pass 2 (patch):
    Header rewritten with the app info offset and fresh dates
    Entries rewritten with each record's offset and attributes

Only a single record list is ever written. Entry unique IDs are zero; the
handheld assigns real ones when the database is restored.

Every record and category label is encoded before the first byte is
written, so an unencodable one fails the write without touching the stream. A short
write part-way through leaves the output invalid; write_database_file()
avoids exposing such a file by writing to a temporary name first.

Usage
-----
    >>> from mathpad_tools.db import parse_database_file, write_database_file
    >>> database = parse_database_file("MathPadDB.pdb")
    >>> database.records.append(Record(text="Tip\\n15% * 42.50"))
    >>> write_database_file(database, "MathPadDB.pdb")
"""

from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional, Union
import io
import logging
import os
import shutil
import tempfile

from mathpad_tools.db.database import MathPadDatabase
from mathpad_tools.db.records import (
    RECORD_ENTRY_SIZE,
    RecordEntry,
    RecordListHeader,
)
from mathpad_tools.errors import DatabaseFormatError, DatabaseIOError

# Logger for this module
logger = logging.getLogger(__name__)

# Entry count is a 16-bit field
MAX_RECORDS = 0xFFFF


# =============================================================================
# Database Writer
# =============================================================================

class DatabaseWriter:
    """
    Writes a MathPadDatabase to a seekable binary stream.

    Offsets are computed relative to the stream position at the time
    write() is called, which is normally 0.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream

    def _write(self, data: bytes, what: str) -> None:
        """Write all of data or raise DatabaseIOError."""
        offset = self.stream.tell()
        written = self.stream.write(data)
        if written is not None and written != len(data):
            raise DatabaseIOError(f"Error writing {what}", offset, len(data), written)

    def write(self, database: MathPadDatabase, when: Optional[datetime] = None) -> int:
        """
        Serialize database to the stream.

        Once the whole file is written, database.header is replaced by a
        header carrying the new app info offset and dates, so it describes
        the file just written. A failed write leaves it untouched.

        Args:
            database: The database to write
            when: Timestamp for the header dates (default: now)

        Returns:
            Number of bytes written

        Raises:
            DatabaseFormatError: If a record or category label cannot be
                stored, or there are more records than one record list
                can hold
            DatabaseIOError: On a short write
        """
        records = list(database.records)
        if len(records) > MAX_RECORDS:
            raise DatabaseFormatError(
                f"Too many records: {len(records)} (maximum {MAX_RECORDS})"
            )

        bodies = [record.to_bytes(database.encoding) for record in records]
        app_info = database.categories.to_bytes(database.encoding)
        header = database.header
        base = self.stream.tell()

        # Pass 1: lay out every block, noting where each record lands
        self._write(header.to_bytes(), "database header")
        self._write(RecordListHeader(next_list_offset=0, num_records=len(records)).to_bytes(),
                    "database record list")
        entries_offset = self.stream.tell()
        self._write(bytes(len(records) * RECORD_ENTRY_SIZE), "database record entries")

        app_info_offset = self.stream.tell() - base
        self._write(app_info, "database app info block")

        entries = []
        for record, body in zip(records, bodies):
            entries.append(RecordEntry.for_record(record, self.stream.tell() - base))
            self._write(body, "database record")

        end = self.stream.tell()

        # Pass 2: patch the header and entries with the final values
        if header.sort_info_offset:
            logger.debug("Dropping sort info block reference")
        patched = replace(header, app_info_offset=app_info_offset, sort_info_offset=0)
        patched.touch(when)

        self.stream.seek(base)
        self._write(patched.to_bytes(), "database header")
        self.stream.seek(entries_offset)
        self._write(b"".join(entry.to_bytes() for entry in entries), "database record entries")
        self.stream.seek(end)
        database.header = patched

        size = end - base
        logger.info(f"Wrote {len(records)} records ({size} bytes)")
        return size


# =============================================================================
# Convenience Functions
# =============================================================================

def write_database(
    database: MathPadDatabase,
    stream: BinaryIO,
    when: Optional[datetime] = None,
) -> int:
    """Write database to a seekable binary stream; returns bytes written."""
    return DatabaseWriter(stream).write(database, when)


def build_database(database: MathPadDatabase, when: Optional[datetime] = None) -> bytes:
    """
    Serialize database to bytes.

    Example:
        >>> data = build_database(database)
        >>> Path("MathPadDB.pdb").write_bytes(data)
    """
    buffer = io.BytesIO()
    DatabaseWriter(buffer).write(database, when)
    return buffer.getvalue()


def write_database_file(
    database: MathPadDatabase,
    filepath: Union[str, Path],
    when: Optional[datetime] = None,
) -> int:
    """
    Write database to disk, replacing filepath only on success.

    The data goes to a temporary file beside filepath, which is renamed
    over filepath once it is completely written. On any error the
    temporary file is removed and filepath is left as it was. An existing
    filepath keeps its permission bits.

    Returns:
        Number of bytes written
    """
    filepath = Path(filepath)
    fd, temp_name = tempfile.mkstemp(
        prefix=f".{filepath.name}.", suffix=".tmp", dir=filepath.parent
    )
    try:
        with os.fdopen(fd, "wb") as f:
            size = DatabaseWriter(f).write(database, when)
        if filepath.exists():
            shutil.copymode(filepath, temp_name)
        os.replace(temp_name, filepath)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise

    logger.debug(f"Saved {filepath}")
    return size
