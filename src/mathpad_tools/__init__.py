"""
MathPad Tools - Desktop Converters for MathPad Handheld Databases
=================================================================

MathPad is a calculator notepad for the Palm handheld. When the handheld
is synchronised, its records are backed up to the desktop as a binary
database file. This package converts that file into an editable text file
and merges edited text back into the database.

Main Components
---------------
- **db**: Binary database codec, category table, record store, text
    interchange format and the import merge engine

- **cli**: Command-line tools
    mpexport: Write every record of a database to a text file
    mpimport: Merge a text file back into a database

Quick Start
-----------
    >>> from mathpad_tools.db import parse_database_file, export_text_file
    >>> database = parse_database_file("MathPadDB.pdb")
    >>> export_text_file(database, "mathpad.txt")

Or use the command-line tools:
    $ mpexport MathPadDB.pdb mathpad.txt
    $ mpimport MathPadDB.pdb mathpad.txt

Version History
---------------
1.0.0 - Initial release with export, import and merge
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from mathpad_tools.config import ToolConfig
from mathpad_tools.errors import (
    MathPadError,
    DatabaseError,
    DatabaseFormatError,
    DatabaseIOError,
    CategoryTableFull,
)
from mathpad_tools.db import (
    MathPadDatabase,
    Record,
    CategoryTable,
    RecordStore,
    MergeDecision,
    parse_database_file,
    write_database_file,
    export_text_file,
    import_text,
)

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "ToolConfig",
    # Exception hierarchy
    "MathPadError",
    "DatabaseError",
    "DatabaseFormatError",
    "DatabaseIOError",
    "CategoryTableFull",
    # Database
    "MathPadDatabase",
    "Record",
    "CategoryTable",
    "RecordStore",
    "MergeDecision",
    "parse_database_file",
    "write_database_file",
    "export_text_file",
    "import_text",
]
