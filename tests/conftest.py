"""
MathPad Tools - Test Configuration
==================================

Shared fixtures for the test suite:
- pack_database: builds raw database bytes by hand with struct, independent
  of the writer under test
- sample_database: a small in-memory database with two categories
- sample_db_file: the sample database written to a temporary file
"""

import struct
from pathlib import Path

import pytest

from mathpad_tools.db import (
    CategoryTable,
    MathPadDatabase,
    Record,
    RecordStore,
    write_database_file,
)


def _pack_database(
    bodies,
    attributes=None,
    labels=("Unfiled",),
    lists=None,
    type_tag=b"Data",
    creator=b"MthP",
    version=1,
) -> bytes:
    """
    Build a database image.

    Args:
        bodies: (places, strip_zeros, text bytes) for each record
        attributes: Entry attribute byte for each record (default 0)
        labels: Category labels for the first slots
        lists: Number of entries in each chained record list
            (default: one list holding every record)
    """
    attributes = attributes or [0] * len(bodies)
    lists = lists or [len(bodies)]
    assert sum(lists) == len(bodies)

    list_offsets = []
    offset = 72
    for count in lists:
        list_offsets.append(offset)
        offset += 6 + 8 * count
    app_info_offset = offset

    slots = list(labels) + [""] * (16 - len(labels))
    app_info = struct.pack(">H", 0)
    app_info += b"".join(label.encode("latin-1").ljust(16, b"\x00") for label in slots)
    app_info += bytes(i if i < len(labels) else 0 for i in range(16))
    app_info += bytes([len(labels) - 1, 0])
    app_info += bytes(34)
    assert len(app_info) == 310

    record_data = b""
    record_offsets = []
    offset = app_info_offset + len(app_info)
    for places, strip_zeros, text in bodies:
        body = struct.pack(">BB", places, strip_zeros) + text + b"\x00"
        record_offsets.append(offset)
        record_data += body
        offset += len(body)

    list_data = b""
    index = 0
    for number, count in enumerate(lists):
        next_offset = list_offsets[number + 1] if number + 1 < len(lists) else 0
        list_data += struct.pack(">IH", next_offset, count)
        for _ in range(count):
            list_data += struct.pack(">IB3s", record_offsets[index], attributes[index], b"\x00\x00\x00")
            index += 1

    header = struct.pack(
        ">32sHHIIIIII4s4sI",
        b"MathPadDB", 0, version, 0, 0, 0, 0,
        app_info_offset, 0, type_tag, creator, 0,
    )
    return header + list_data + app_info + record_data


@pytest.fixture
def pack_database():
    """Return the raw database builder."""
    return _pack_database


@pytest.fixture
def sample_records() -> list[Record]:
    """Three records spread over two categories."""
    return [
        Record(category=0, places=2, strip_zeros=True, text="Tip\nbill = 42.50\nbill * 0.15"),
        Record(category=1, secret=True, places=4, strip_zeros=False,
               text="Loan payment\np = 1200 * 0.05 / 12"),
        Record(category=0, text="Area\npi * 3^2"),
    ]


@pytest.fixture
def sample_database(sample_records: list[Record]) -> MathPadDatabase:
    """An in-memory database with the Unfiled and Finance categories."""
    categories = CategoryTable()
    categories.allocate_slot("Finance")
    return MathPadDatabase(categories=categories, records=RecordStore(sample_records))


@pytest.fixture
def sample_db_file(tmp_path: Path, sample_database: MathPadDatabase) -> Path:
    """The sample database written to disk."""
    path = tmp_path / "MathPadDB.pdb"
    write_database_file(sample_database, path)
    return path
