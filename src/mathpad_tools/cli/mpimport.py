"""
mpimport - MathPad Text Importer
================================

Merges records from a text file made by mpexport back into a MathPad
database. A record whose title is not in the database is added; one that
matches an existing record exactly is skipped; one that differs prompts:

    Overwrite "Loan payment" (Yes/No/All)?

Yes replaces the database record, No keeps it and adds the import as a
separate record, and All replaces this and every later conflict.

Usage Examples
--------------
Update the database in place:
    $ mpimport MathPadDB.pdb mathpad.txt

Write the result to a new file, leaving the original as a backup:
    $ mpimport MathPadDB.pdb mathpad.txt NewMathPadDB.pdb

Overwrite every conflicting record without asking:
    $ mpimport --overwrite-all MathPadDB.pdb mathpad.txt
"""

from pathlib import Path
from typing import Optional

import click

from mathpad_tools import __version__
from mathpad_tools.cli.errors import handle_cli_exception, setup_logging
from mathpad_tools.config import ToolConfig
from mathpad_tools.db import (
    MergeDecision,
    Record,
    import_text,
    parse_database_file,
    write_database_file,
)

REPLIES = {
    "Y": MergeDecision.OVERWRITE,
    "N": MergeDecision.KEEP,
    "A": MergeDecision.OVERWRITE_ALL,
}


def prompt_decision(title: str, existing: Record, incoming: Record) -> MergeDecision:
    """Ask whether to overwrite a conflicting record, until answered."""
    while True:
        reply = click.prompt(
            f'Overwrite "{title}" (Yes/No/All)?',
            default="",
            show_default=False,
            prompt_suffix=" ",
        )
        decision = REPLIES.get(reply.strip()[:1].upper())
        if decision is not None:
            return decision


@click.command()
@click.version_option(__version__, "--version", "-V", prog_name="mpimport")
@click.argument(
    "old_db",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument(
    "text_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument(
    "new_db",
    required=False,
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "-a", "--overwrite-all",
    is_flag=True,
    help="Overwrite conflicting records without asking",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
def main(
    old_db: Path,
    text_file: Path,
    new_db: Optional[Path],
    overwrite_all: bool,
    verbose: bool,
) -> None:
    """
    Import records from a text file into a MathPad database.

    OLD_DB is the database to merge into. TEXT_FILE is a file produced by
    mpexport (possibly edited). Give NEW_DB to write the result to a new
    file and keep OLD_DB untouched as a backup; omit it to update OLD_DB in
    place.

    \b
    Examples:
      mpimport MathPadDB.pdb mathpad.txt
      mpimport MathPadDB.pdb mathpad.txt NewMathPadDB.pdb
    """
    setup_logging(verbose)
    config = ToolConfig.from_env()
    output = new_db or old_db

    try:
        with parse_database_file(old_db, config) as database:
            with open(text_file, encoding=config.text_encoding) as text:
                report = import_text(
                    database,
                    text,
                    decide=prompt_decision,
                    config=config,
                    overwrite_all=overwrite_all,
                )
            size = write_database_file(database, output)
            held = len(database.records)

        click.echo(
            f"Imported {report.total} records into {output}: "
            f"{report.added} added, {report.replaced} replaced, "
            f"{report.duplicated} added as copies, {report.identical} unchanged"
        )
        if verbose:
            click.echo(f"  Database now holds {held} records ({size} bytes)")

    except click.Abort:
        raise
    except Exception as e:
        handle_cli_exception(e, verbose, "Import")


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
