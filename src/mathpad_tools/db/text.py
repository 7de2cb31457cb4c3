"""
Text Interchange Format
=======================

MathPad records are exported to, and imported from, a plain text file that
can be edited, printed or mailed. Each record is one block:

    Category = "Finance"; Secret = 0
    Places = 2; StripZeros = 1
    Loan payment
    p = 1200 * 0.05 / 12
    ~~~~~~~~~~~~~~~~~~~~~~~~~~~

- The Category line is optional; without it the record is Unfiled and not
  secret.
- The Places line is optional; without it the record shows 14 places and
  strips trailing zeros.
- Every following line up to the separator (27 tildes) or the end of the
  file is record text. The first text line is the record's title.

Blank lines and stray separators between records are ignored, so a file
ending in blank lines does not produce an empty record. Line endings of any
platform are accepted.
"""

from pathlib import Path
from typing import Iterator, Optional, TextIO, Union
import logging
import re

from mathpad_tools.config import ToolConfig
from mathpad_tools.db.categories import UNFILED_CATEGORY, CategoryTable
from mathpad_tools.db.database import MathPadDatabase
from mathpad_tools.db.records import LINE_TERMINATOR, Record

# Logger for this module
logger = logging.getLogger(__name__)

CATEGORY_PREFIX = 'Category = "'
PLACES_PREFIX = "Places = "

CATEGORY_LINE = 'Category = "{name}"; Secret = {secret:d}\n'
PLACES_LINE = "Places = {places:d}; StripZeros = {strip_zeros:d}\n"

_LEADING_INT = re.compile(r"\s*([-+]?\d+)")


def _atoi(text: str) -> int:
    """Parse a leading integer the lenient way C's atoi() does (0 if none)."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _value_after_equals(text: str) -> Optional[tuple[int, str]]:
    """Parse the integer after the first '=' in text, plus the remainder."""
    _, sep, rest = text.partition("=")
    if not sep:
        return None
    return _atoi(rest), rest


# =============================================================================
# Import Parser
# =============================================================================

class TextImportParser:
    """
    Parses records from a text stream, one at a time.

    Category names not yet in the category table are added to it as they
    are met; if the table is full such records are filed as Unfiled.

    Attributes:
        stream: Text stream to read
        categories: Category table used to resolve and add names
        config: Defaults and separator line
        line_number: Number of lines read so far
    """

    _SKIPPED = object()

    def __init__(
        self,
        stream: TextIO,
        categories: CategoryTable,
        config: Optional[ToolConfig] = None,
    ) -> None:
        self.stream = stream
        self.categories = categories
        self.config = config or ToolConfig()
        self.line_number = 0

    def _read_line(self) -> Optional[str]:
        line = self.stream.readline()
        if not line:
            return None
        self.line_number += 1
        return line

    def _is_separator(self, line: str) -> bool:
        return line.rstrip("\r\n") == self.config.separator

    def _ends_record(self, line: Optional[str]) -> bool:
        return line is None or self._is_separator(line)

    @staticmethod
    def _normalize(line: str) -> str:
        """Replace whatever line ending line has with the handheld's."""
        return line.rstrip("\r\n") + LINE_TERMINATOR

    def _parse_category_line(self, line: str) -> tuple[int, bool]:
        body = line.rstrip("\r\n")[len(CATEGORY_PREFIX):]
        name, _, rest = body.partition('"')
        category = self.categories.resolve(name)
        value = _value_after_equals(rest)
        secret = value is not None and value[0] != 0
        return category, secret

    def _parse_places_line(self, line: str) -> tuple[int, bool]:
        places = self.config.default_places
        strip_zeros = self.config.default_strip_zeros
        value = _value_after_equals(line.rstrip("\r\n"))
        if value is not None:
            places = value[0] & 0xFF
            strip = _value_after_equals(value[1])
            if strip is not None:
                strip_zeros = strip[0] != 0
        return places, strip_zeros

    def _parse_one(self):
        line = self._read_line()
        while line is not None and (self._is_separator(line) or not line.rstrip("\r\n")):
            line = self._read_line()
        if line is None:
            return None

        start_line = self.line_number
        record = Record(
            places=self.config.default_places,
            strip_zeros=self.config.default_strip_zeros,
        )

        if line.startswith(CATEGORY_PREFIX):
            record.category, record.secret = self._parse_category_line(line)
            line = self._read_line()
            if self._ends_record(line):
                return self._discard(start_line, line)

        if line.startswith(PLACES_PREFIX):
            record.places, record.strip_zeros = self._parse_places_line(line)
            line = self._read_line()
            if self._ends_record(line):
                return self._discard(start_line, line)

        lines = []
        while not self._ends_record(line):
            lines.append(self._normalize(line))
            line = self._read_line()

        # The last line's terminator becomes the on-disk end of text
        record.text = "".join(lines)[:-len(LINE_TERMINATOR)]
        logger.debug(f"Line {start_line}: parsed record '{record.title}'")
        return record

    def _discard(self, start_line: int, line: Optional[str]):
        logger.warning(f"Line {start_line}: record has no text; skipped")
        return None if line is None else self._SKIPPED

    def parse_record(self) -> Optional[Record]:
        """
        Parse the next record.

        Returns:
            The record, or None at the end of input
        """
        while True:
            record = self._parse_one()
            if record is not self._SKIPPED:
                return record

    def iter_records(self) -> Iterator[Record]:
        """Yield every remaining record in the stream."""
        while (record := self.parse_record()) is not None:
            yield record


# =============================================================================
# Exporter
# =============================================================================

def format_record(record: Record, categories: CategoryTable, config: Optional[ToolConfig] = None) -> str:
    """
    Render one record as a text block, separator included.

    A record filed under a slot with no name is written as Unfiled, the
    category it would be imported into.
    """
    config = config or ToolConfig()
    name = categories.label(record.category)
    if not name:
        logger.warning(
            f"Record '{record.title}' is filed under unnamed category "
            f"{record.category}; exporting it as Unfiled"
        )
        name = categories.label(UNFILED_CATEGORY)
    return (
        CATEGORY_LINE.format(name=name, secret=record.secret)
        + PLACES_LINE.format(places=record.places, strip_zeros=record.strip_zeros)
        + record.text
        + "\n"
        + config.separator
        + "\n"
    )


def export_text(database: MathPadDatabase, stream: TextIO, config: Optional[ToolConfig] = None) -> int:
    """
    Write every record of database to a text stream.

    Returns:
        Number of records written
    """
    count = 0
    for record in database.records:
        stream.write(format_record(record, database.categories, config))
        count += 1
    logger.info(f"Exported {count} records")
    return count


def export_text_file(
    database: MathPadDatabase,
    filepath: Union[str, Path],
    config: Optional[ToolConfig] = None,
) -> int:
    """Write every record of database to a text file; returns the count."""
    config = config or ToolConfig()
    with open(Path(filepath), "w", encoding=config.text_encoding) as f:
        return export_text(database, f, config)
