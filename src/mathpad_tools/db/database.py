"""
MathPad Database Aggregate
==========================

MathPadDatabase bundles everything one run works on: the header, the
category table and the record store. It is created by the reader, handed
to the merge engine and the text exporter, and finally given to the writer.
There is no module-level state; each of those components receives the
database explicitly.
"""

from dataclasses import dataclass, field

from mathpad_tools.config import DEFAULT_TEXT_ENCODING
from mathpad_tools.db.categories import CategoryTable
from mathpad_tools.db.records import DatabaseHeader, Record
from mathpad_tools.db.store import RecordStore


@dataclass
class MathPadDatabase:
    """
    An in-memory MathPad database.

    Attributes:
        header: The database header as last read or written
        categories: The shared category table
        records: The ordered record store
        encoding: Character set of record text and category labels

    Use as a context manager to release all records when done:

        >>> with parse_database_file("MathPadDB.pdb") as database:
        ...     print(len(database.records))
    """
    header: DatabaseHeader = field(default_factory=DatabaseHeader)
    categories: CategoryTable = field(default_factory=CategoryTable)
    records: RecordStore = field(default_factory=RecordStore)
    encoding: str = DEFAULT_TEXT_ENCODING

    def __post_init__(self) -> None:
        # Labels are limited in bytes of the database's character set
        self.categories.encoding = self.encoding

    def __enter__(self) -> "MathPadDatabase":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.records.clear()

    def category_name(self, record: Record) -> str:
        """Get the label of the category a record is filed under."""
        return self.categories.label(record.category)

    def get_info(self) -> dict:
        """
        Get summary information about the database.

        Returns:
            Dictionary with database information
        """
        per_category: dict[str, int] = {}
        for record in self.records:
            name = self.category_name(record) or f"#{record.category}"
            per_category[name] = per_category.get(name, 0) + 1

        return {
            "name": self.header.get_display_name(),
            "version": self.header.version,
            "created": self.header.created.isoformat(),
            "modified": self.header.modified.isoformat(),
            "record_count": len(self.records),
            "secret_count": sum(1 for record in self.records if record.secret),
            "categories": [self.categories.label(i) for i in self.categories.occupied_slots()],
            "records_per_category": per_category,
        }
