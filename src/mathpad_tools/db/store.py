"""
In-Memory Record Store
======================

An ordered collection of MathPad records. Records keep file order when a
database is loaded and are appended in import order afterwards. A record
can be replaced in place, which keeps its position, but records are never
edited field by field.

The store owns its records: once a record is appended it must not be
shared with another store, and a replaced record is dropped entirely.
Using the store as a context manager guarantees every record is released
when the block ends, error or not.

Example:
    >>> with RecordStore() as store:
    ...     index = store.append(Record(text="Area\\npi*r^2"))
    ...     store.find_by_title(Record(text="Area\\n"))
    0
"""

from typing import Iterable, Iterator, Optional
import logging

from mathpad_tools.db.records import Record

logger = logging.getLogger(__name__)


class RecordStore:
    """Ordered, index-addressed collection of records."""

    def __init__(self, records: Optional[Iterable[Record]] = None) -> None:
        self._records: list[Record] = []
        for record in records or ():
            self.append(record)

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __getitem__(self, index: int) -> Record:
        return self._records[index]

    def __repr__(self) -> str:
        return f"RecordStore({len(self._records)} records)"

    def append(self, record: Record) -> int:
        """
        Add a record at the end of the store.

        Returns:
            The index of the new record
        """
        self._records.append(record)
        return len(self._records) - 1

    def find_by_title(self, record: Record) -> Optional[int]:
        """
        Find the first stored record whose title matches record's.

        Titles match when the first lines are identical and either both or
        neither of them end in a line terminator.

        Returns:
            Index of the matching record, or None
        """
        key = record.title_key
        for index, stored in enumerate(self._records):
            if stored.title_key == key:
                return index
        return None

    def replace(self, index: int, record: Record) -> Record:
        """
        Put record in place of the one at index.

        Returns:
            The superseded record, no longer referenced by the store
        """
        old = self._records[index]
        self._records[index] = record
        logger.debug(f"Replaced record {index} '{old.title}'")
        return old

    def titles(self) -> list[str]:
        return [record.title for record in self._records]

    def clear(self) -> None:
        """Release every record."""
        self._records.clear()
