"""
MathPad Database Handling
=========================

This package reads and writes MathPad backup databases, the record store
that a Palm handheld's MathPad calculator leaves on the desktop after a
HotSync, and converts their records to and from an editable text format.

This module provides:
- **DatabaseReader**: Parse a database file into memory
- **DatabaseWriter**: Serialize a database back to the file layout
- **CategoryTable**: The shared 16-slot category table
- **RecordStore**: Ordered in-memory record collection
- **TextImportParser / export_text**: The text interchange format
- **MergeEngine**: Merge imported records by title

Quick Start
-----------
Exporting a database to text:

    >>> from mathpad_tools.db import parse_database_file, export_text_file
    >>> with parse_database_file("MathPadDB.pdb") as database:
    ...     export_text_file(database, "mathpad.txt")

Importing edited text back into it:

    >>> from mathpad_tools.db import MergeDecision, import_text, write_database_file
    >>> database = parse_database_file("MathPadDB.pdb")
    >>> with open("mathpad.txt", encoding="latin-1") as f:
    ...     report = import_text(database, f, decide=lambda *_: MergeDecision.OVERWRITE)
    >>> write_database_file(database, "MathPadDB.pdb")

File Format
-----------
- Type "Data", creator "MthP", version 1
- Big-endian integers, absolute file offsets
- See mathpad_tools.db.records for the full layout
"""

# =============================================================================
# Public API Exports
# =============================================================================

# Byte order helpers
from mathpad_tools.db.endian import (
    FILE_BYTE_ORDER,
    swap_word,
    swap_dword,
    to_native,
    from_native,
)

# Record layouts
from mathpad_tools.db.records import (
    PDB_TYPE,
    PDB_CREATOR,
    PDB_VERSION,
    RecordAttr,
    DatabaseHeader,
    RecordListHeader,
    RecordEntry,
    Record,
)

# Categories and records in memory
from mathpad_tools.db.categories import (
    NUM_CATEGORIES,
    UNFILED_CATEGORY,
    CategoryTable,
)
from mathpad_tools.db.store import RecordStore
from mathpad_tools.db.database import MathPadDatabase

# Reader and writer
from mathpad_tools.db.parser import (
    DatabaseReader,
    read_database,
    parse_database,
    parse_database_file,
)
from mathpad_tools.db.builder import (
    DatabaseWriter,
    write_database,
    build_database,
    write_database_file,
)

# Text format and merging
from mathpad_tools.db.text import (
    TextImportParser,
    format_record,
    export_text,
    export_text_file,
)
from mathpad_tools.db.merge import (
    MergeDecision,
    MergeOutcome,
    MergeReport,
    MergeEngine,
    import_text,
)

# =============================================================================
# Module-level __all__ for explicit exports
# =============================================================================

__all__ = [
    # Byte order
    "FILE_BYTE_ORDER",
    "swap_word",
    "swap_dword",
    "to_native",
    "from_native",
    # Layouts
    "PDB_TYPE",
    "PDB_CREATOR",
    "PDB_VERSION",
    "RecordAttr",
    "DatabaseHeader",
    "RecordListHeader",
    "RecordEntry",
    "Record",
    # In-memory model
    "NUM_CATEGORIES",
    "UNFILED_CATEGORY",
    "CategoryTable",
    "RecordStore",
    "MathPadDatabase",
    # Reader
    "DatabaseReader",
    "read_database",
    "parse_database",
    "parse_database_file",
    # Writer
    "DatabaseWriter",
    "write_database",
    "build_database",
    "write_database_file",
    # Text format
    "TextImportParser",
    "format_record",
    "export_text",
    "export_text_file",
    # Merge
    "MergeDecision",
    "MergeOutcome",
    "MergeReport",
    "MergeEngine",
    "import_text",
]
