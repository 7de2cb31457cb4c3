"""
MathPad Tools Error Hierarchy
=============================

This module defines the exception hierarchy for the MathPad database tools.
All exceptions inherit from MathPadError, allowing callers to catch all
tool-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
MathPadError (base)
├── DatabaseError (binary database handling)
│   ├── DatabaseFormatError - wrong type/creator tag, unsupported version,
│   │                         or record text that cannot be stored
│   └── DatabaseIOError - short read or short write (also an OSError)
└── CategoryTableFull - all 16 category slots are in use

Recoverability
--------------
DatabaseFormatError and DatabaseIOError end the whole run: the caller must
not treat a partially written output file as valid. CategoryTableFull is
recoverable; the text importer catches it and files the record under the
Unfiled category instead.

Out-of-memory conditions are left to Python's own MemoryError, which
propagates like any other exception. Only the command-line layer turns
exceptions into messages and exit codes.
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class MathPadError(Exception):
    """
    Base exception for all MathPad tool errors.

    All exceptions in the package inherit from this class, allowing callers
    to catch every tool-related error with a single except clause:

        try:
            database = parse_database_file("MathPadDB.pdb")
        except MathPadError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Database Exceptions
# =============================================================================

class DatabaseError(MathPadError):
    """Base exception for errors reading or writing the binary database."""
    pass


class DatabaseFormatError(DatabaseError):
    """
    The database file is not one this tool can handle.

    Raised when:
        - The type tag is not "Data" or the creator tag is not "MthP"
        - The version word is not the supported version (1)
        - A record's text cannot be encoded into the on-disk character set
    """
    pass


class DatabaseIOError(DatabaseError, OSError):
    """
    A read or write of the database stream came up short.

    Carries the operation that failed and the byte offset at which it was
    attempted, when known. Because it is also an OSError, callers that only
    care about I/O failures can catch it that way.
    """

    def __init__(
        self,
        message: str,
        offset: Optional[int] = None,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ):
        self.offset = offset
        self.expected = expected
        self.actual = actual
        detail = message
        if offset is not None:
            detail += f" at offset {offset}"
        if expected is not None and actual is not None:
            detail += f" (expected {expected} bytes, got {actual})"
        super().__init__(detail)

    def __str__(self) -> str:
        return self.args[0]


# =============================================================================
# Category Table Exceptions
# =============================================================================

class CategoryTableFull(MathPadError):
    """
    All 16 category slots are occupied.

    The table never grows past 16 slots. Callers are expected to fall back
    to the Unfiled category (index 0).
    """

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"cannot add category '{name}': all 16 category slots are in use"
        )
