"""
MathPad Tools Command-Line Interface
====================================

This package provides command-line tools for MathPad databases:

- **mpexport**: Export database records to a text file
- **mpimport**: Merge a text file back into a database

Each tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["mpexport", "mpimport"]
