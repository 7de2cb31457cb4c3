"""
MathPad Database Record Layouts
===============================

This module defines the data structures for the MathPad backup database,
a Palm-style fixed-layout record store produced when the handheld is
synchronised with a desktop.

Database Structure Overview
---------------------------
A MathPad database file contains:
1. Database Header (72 bytes): name, flags, dates, block offsets, tags
2. Record List Block (6 bytes + 8 per entry): chain link, entry count,
   then one entry per record
3. App Info Block (310 bytes): the shared category table plus MathPad's
   own application settings
4. Records (variable): two setting bytes followed by NUL-terminated text

All offsets are absolute byte positions from the start of the file, and
every integer is stored big-endian.

Record List Chaining
--------------------
The header is followed directly by the first record list. Each list names
the offset of the next one (0 ends the chain). Files written by these tools
always contain a single list, but any number of lists is accepted on read.

Record Entry Attributes
-----------------------
    Bits 0-3: Category index (0 = Unfiled)
    Bit 4:    Secret (private) record
    Bits 5-7: Busy, dirty and delete flags (not produced by backups)

Record Body
-----------
    Byte 0:   Decimal places shown for results
    Byte 1:   Strip trailing zeros flag
    Byte 2+:  Text, lines separated by 0x0A, terminated by 0x00

The first line of the text is the record's title.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import IntFlag
import struct

from mathpad_tools.config import DEFAULT_PLACES, DEFAULT_STRIP_ZEROS, DEFAULT_TEXT_ENCODING
from mathpad_tools.db.endian import FILE_BYTE_ORDER
from mathpad_tools.errors import DatabaseFormatError


# =============================================================================
# Constants
# =============================================================================

PDB_TYPE = b"Data"
PDB_CREATOR = b"MthP"
PDB_VERSION = 1

DB_NAME_LENGTH = 32

HEADER_FORMAT = FILE_BYTE_ORDER + "32sHHIIIIII4s4sI"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)                    # 72

RECORD_LIST_FORMAT = FILE_BYTE_ORDER + "IH"
RECORD_LIST_SIZE = struct.calcsize(RECORD_LIST_FORMAT)          # 6

RECORD_ENTRY_FORMAT = FILE_BYTE_ORDER + "IB3s"
RECORD_ENTRY_SIZE = struct.calcsize(RECORD_ENTRY_FORMAT)        # 8

ITEM_HEADER_FORMAT = FILE_BYTE_ORDER + "BB"
ITEM_HEADER_SIZE = struct.calcsize(ITEM_HEADER_FORMAT)          # 2

# Text in a record body ends at this byte
TEXT_TERMINATOR = 0x00

# Line separator inside record text, as stored on the handheld
LINE_TERMINATOR = "\n"

# Handheld dates count seconds from midnight, 1 January 1904
PALM_EPOCH = datetime(1904, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# Enumeration Types
# =============================================================================

class RecordAttr(IntFlag):
    """
    Attribute bits of a record list entry.

    The low nibble is not a flag: it holds the category index and is
    extracted with CATEGORY_MASK.
    """
    SECRET = 0x10
    BUSY = 0x20
    DIRTY = 0x40
    DELETE = 0x80


CATEGORY_MASK = 0x0F


# =============================================================================
# Date Helpers
# =============================================================================

def to_palm_time(when: datetime) -> int:
    """Convert a datetime to handheld seconds (naive datetimes are UTC)."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return int((when - PALM_EPOCH).total_seconds()) & 0xFFFFFFFF


def from_palm_time(seconds: int) -> datetime:
    """Convert handheld seconds to an aware UTC datetime."""
    return PALM_EPOCH + timedelta(seconds=seconds)


# =============================================================================
# Database Header
# =============================================================================

@dataclass
class DatabaseHeader:
    """
    Database header (72 bytes at the start of the file).

    Structure:
        Offset  Size    Description
        ------  ----    -----------
        0       32      Database name (NUL padded)
        32      2       Attribute flags
        34      2       Version
        36      4       Creation date
        40      4       Modification date
        44      4       Last backup date
        48      4       Modification number
        52      4       App info block offset
        56      4       Sort info block offset
        60      4       Type tag ("Data")
        64      4       Creator tag ("MthP")
        68      4       Unique ID seed
    """
    name: bytes = b"MathPadDB"
    attributes: int = 0
    version: int = PDB_VERSION
    creation_date: int = 0
    modification_date: int = 0
    backup_date: int = 0
    modification_number: int = 0
    app_info_offset: int = 0
    sort_info_offset: int = 0
    type_tag: bytes = PDB_TYPE
    creator: bytes = PDB_CREATOR
    unique_id_seed: int = 0

    def to_bytes(self) -> bytes:
        """Serialize the header to 72 bytes."""
        return struct.pack(
            HEADER_FORMAT,
            self.name[:DB_NAME_LENGTH],
            self.attributes,
            self.version,
            self.creation_date,
            self.modification_date,
            self.backup_date,
            self.modification_number,
            self.app_info_offset,
            self.sort_info_offset,
            self.type_tag,
            self.creator,
            self.unique_id_seed,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "DatabaseHeader":
        """Deserialize a header from the first 72 bytes of data."""
        if len(data) < HEADER_SIZE:
            raise ValueError(f"Header too short: need {HEADER_SIZE} bytes, got {len(data)}")

        fields = struct.unpack_from(HEADER_FORMAT, data)
        return cls(
            name=fields[0].split(b"\x00", 1)[0],
            attributes=fields[1],
            version=fields[2],
            creation_date=fields[3],
            modification_date=fields[4],
            backup_date=fields[5],
            modification_number=fields[6],
            app_info_offset=fields[7],
            sort_info_offset=fields[8],
            type_tag=fields[9],
            creator=fields[10],
            unique_id_seed=fields[11],
        )

    def validate(self) -> None:
        """
        Check that this is a MathPad database we know how to handle.

        Raises:
            DatabaseFormatError: On a foreign type/creator or unknown version
        """
        if self.type_tag != PDB_TYPE or self.creator != PDB_CREATOR:
            raise DatabaseFormatError(
                f"Not a MathPad database file "
                f"(type {self.type_tag!r}, creator {self.creator!r})"
            )
        if self.version != PDB_VERSION:
            raise DatabaseFormatError(
                f"Don't know how to read version {self.version} of the MathPad "
                f"database (only version {PDB_VERSION} is supported)"
            )

    def touch(self, when: datetime | None = None) -> None:
        """Set creation, modification and backup dates to when (default now)."""
        stamp = to_palm_time(when or datetime.now(timezone.utc))
        self.creation_date = stamp
        self.modification_date = stamp
        self.backup_date = stamp

    def get_display_name(self) -> str:
        return self.name.decode("latin-1")

    @property
    def created(self) -> datetime:
        return from_palm_time(self.creation_date)

    @property
    def modified(self) -> datetime:
        return from_palm_time(self.modification_date)


# =============================================================================
# Record List Block
# =============================================================================

@dataclass
class RecordListHeader:
    """
    Record list block header (6 bytes), followed directly by its entries.

    Structure:
        Offset  Size    Description
        0       4       Offset of the next record list (0 = last)
        4       2       Number of entries in this list
    """
    next_list_offset: int = 0
    num_records: int = 0

    def to_bytes(self) -> bytes:
        return struct.pack(RECORD_LIST_FORMAT, self.next_list_offset, self.num_records)

    @classmethod
    def from_bytes(cls, data: bytes) -> "RecordListHeader":
        next_list_offset, num_records = struct.unpack_from(RECORD_LIST_FORMAT, data)
        return cls(next_list_offset=next_list_offset, num_records=num_records)


@dataclass
class RecordEntry:
    """
    One record list entry (8 bytes).

    Structure:
        Offset  Size    Description
        0       4       Absolute offset of the record body
        4       1       Attributes (category index | flags)
        5       3       Unique ID (written as zeros)
    """
    offset: int = 0
    attributes: int = 0
    unique_id: bytes = b"\x00\x00\x00"

    @property
    def category(self) -> int:
        return self.attributes & CATEGORY_MASK

    @property
    def secret(self) -> bool:
        return bool(self.attributes & RecordAttr.SECRET)

    @classmethod
    def pack_attributes(cls, category: int, secret: bool) -> int:
        """Combine a category index and secret flag into an attribute byte."""
        attributes = category & CATEGORY_MASK
        if secret:
            attributes |= RecordAttr.SECRET
        return int(attributes)

    @classmethod
    def for_record(cls, record: "Record", offset: int) -> "RecordEntry":
        """Build the entry pointing at record, written at offset."""
        return cls(
            offset=offset,
            attributes=cls.pack_attributes(record.category, record.secret),
        )

    def to_bytes(self) -> bytes:
        return struct.pack(RECORD_ENTRY_FORMAT, self.offset, self.attributes, self.unique_id)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "RecordEntry":
        record_offset, attributes, unique_id = struct.unpack_from(RECORD_ENTRY_FORMAT, data, offset)
        return cls(offset=record_offset, attributes=attributes, unique_id=unique_id)


# =============================================================================
# MathPad Record
# =============================================================================

@dataclass
class Record:
    """
    A MathPad record held in memory.

    Two records are equal when every field matches, which is the test the
    importer uses to recognise a record that is already up to date.

    Attributes:
        category: Category index (0-15, 0 = Unfiled)
        secret: Private record flag
        places: Number of decimal places shown
        strip_zeros: Strip trailing zeros from results
        text: Record text; lines separated by "\\n", first line is the title
    """
    category: int = 0
    secret: bool = False
    places: int = DEFAULT_PLACES
    strip_zeros: bool = DEFAULT_STRIP_ZEROS
    text: str = ""

    @property
    def title(self) -> str:
        """The first line of text, without its line terminator."""
        return self.text.split(LINE_TERMINATOR, 1)[0]

    @property
    def title_key(self) -> str:
        """
        The first line of text including its terminator, if it has one.

        A one-line record and a multi-line record whose first lines read the
        same therefore have different keys.
        """
        end = self.text.find(LINE_TERMINATOR)
        return self.text if end < 0 else self.text[:end + 1]

    def matches_title(self, other: "Record") -> bool:
        """Check whether other would be imported over this record."""
        return self.title_key == other.title_key

    def to_bytes(self, encoding: str = DEFAULT_TEXT_ENCODING) -> bytes:
        """
        Serialize the record body (settings, text and terminator).

        Raises:
            DatabaseFormatError: If the text cannot be stored on the handheld
        """
        if "\x00" in self.text:
            raise DatabaseFormatError(f"Record '{self.title}' contains a NUL character")
        try:
            text = self.text.encode(encoding)
        except UnicodeEncodeError as e:
            raise DatabaseFormatError(
                f"Record '{self.title}' cannot be encoded as {encoding}: {e}"
            ) from e

        result = bytearray(struct.pack(ITEM_HEADER_FORMAT, self.places & 0xFF, int(self.strip_zeros)))
        result.extend(text)
        result.append(TEXT_TERMINATOR)
        return bytes(result)

    @classmethod
    def from_body(
        cls,
        entry: RecordEntry,
        header: bytes,
        text: bytes,
        encoding: str = DEFAULT_TEXT_ENCODING,
    ) -> "Record":
        """Build a record from its list entry, 2-byte header and raw text."""
        places, strip_zeros = struct.unpack_from(ITEM_HEADER_FORMAT, header)
        return cls(
            category=entry.category,
            secret=entry.secret,
            places=places,
            strip_zeros=strip_zeros != 0,
            text=text.decode(encoding, errors="replace"),
        )

    def get_size(self, encoding: str = DEFAULT_TEXT_ENCODING) -> int:
        """Get the size of the serialized record body in bytes."""
        return len(self.to_bytes(encoding))
