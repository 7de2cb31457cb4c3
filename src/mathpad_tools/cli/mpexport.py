"""
mpexport - MathPad Database Exporter
====================================

Writes every record of a backed-up MathPad database to a plain text file,
so the records can be edited, printed or mailed to others. Use mpimport to
bring the edited text back into the database.

Usage Examples
--------------
Export the backup database:
    $ mpexport MathPadDB.pdb mathpad.txt

With details of every record read:
    $ mpexport -v MathPadDB.pdb mathpad.txt
"""

from pathlib import Path

import click

from mathpad_tools import __version__
from mathpad_tools.cli.errors import handle_cli_exception, setup_logging
from mathpad_tools.config import ToolConfig
from mathpad_tools.db import export_text_file, parse_database_file


@click.command()
@click.version_option(__version__, "--version", "-V", prog_name="mpexport")
@click.argument(
    "db_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument(
    "text_file",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
def main(db_file: Path, text_file: Path, verbose: bool) -> None:
    """
    Export the records of a MathPad database to a text file.

    DB_FILE is the MathPad backup database (usually MathPadDB.pdb in the
    handheld's backup folder). TEXT_FILE is created or overwritten.

    \b
    Example:
      mpexport MathPadDB.pdb mathpad.txt
    """
    setup_logging(verbose)
    config = ToolConfig.from_env()

    try:
        with parse_database_file(db_file, config) as database:
            count = export_text_file(database, text_file, config)
        click.echo(f"Exported {count} records to {text_file}")

    except Exception as e:
        handle_cli_exception(e, verbose, "Export")


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
