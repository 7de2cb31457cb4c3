"""
Import Merge Engine
===================

Merges records parsed from the text format into a database's record store.
Each incoming record is matched against the store by title:

    No record with that title       -> appended                (ADDED)
    Same title, every field equal   -> discarded               (IDENTICAL)
    Same title, something differs   -> ask the caller:
        KEEP           keep the old record, append the new one (DUPLICATED)
        OVERWRITE      replace the old record in place         (REPLACED)
        OVERWRITE_ALL  replace, and stop asking for this run   (REPLACED)

The question is asked through a decision callback so that the engine never
talks to a terminal itself; the mpimport tool supplies an interactive
prompt, tests supply scripted answers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional, TextIO
import logging

from mathpad_tools.config import ToolConfig
from mathpad_tools.db.database import MathPadDatabase
from mathpad_tools.db.records import Record
from mathpad_tools.db.store import RecordStore
from mathpad_tools.db.text import TextImportParser

# Logger for this module
logger = logging.getLogger(__name__)


class MergeDecision(Enum):
    """Reply to a conflicting import."""
    KEEP = "keep"                   # Keep existing, add import as a new record
    OVERWRITE = "overwrite"         # Replace existing with import
    OVERWRITE_ALL = "all"           # Replace, and do so for all later conflicts


class MergeOutcome(Enum):
    """What happened to one imported record."""
    ADDED = "added"
    IDENTICAL = "identical"
    REPLACED = "replaced"
    DUPLICATED = "duplicated"


# Called as decide(title, existing, incoming)
DecisionCallback = Callable[[str, Record, Record], MergeDecision]


@dataclass
class MergeReport:
    """Tally of merge outcomes for one run."""
    added: int = 0
    identical: int = 0
    replaced: int = 0
    duplicated: int = 0
    prompts: int = 0

    def count(self, outcome: MergeOutcome) -> None:
        setattr(self, outcome.value, getattr(self, outcome.value) + 1)

    @property
    def total(self) -> int:
        return self.added + self.identical + self.replaced + self.duplicated

    @property
    def changed(self) -> int:
        """Number of imports that modified the store."""
        return self.added + self.replaced + self.duplicated


class MergeEngine:
    """
    Merges imported records into a RecordStore.

    Attributes:
        store: The store being updated
        decide: Callback consulted on conflicts; without one, conflicting
            imports are kept as separate records
        overwrite_all: Set once the caller answers OVERWRITE_ALL (or passed
            in as True to never ask)
        report: Running tally of outcomes
    """

    def __init__(
        self,
        store: RecordStore,
        decide: Optional[DecisionCallback] = None,
        overwrite_all: bool = False,
    ) -> None:
        self.store = store
        self.decide = decide
        self.overwrite_all = overwrite_all
        self.report = MergeReport()

    def _resolve_conflict(self, existing: Record, incoming: Record) -> MergeDecision:
        if self.overwrite_all:
            return MergeDecision.OVERWRITE
        if self.decide is None:
            return MergeDecision.KEEP

        self.report.prompts += 1
        decision = self.decide(existing.title, existing, incoming)
        if decision is MergeDecision.OVERWRITE_ALL:
            self.overwrite_all = True
        return decision

    def merge(self, incoming: Record) -> MergeOutcome:
        """
        Merge a single imported record.

        Returns:
            What was done with the record
        """
        index = self.store.find_by_title(incoming)

        if index is None:
            self.store.append(incoming)
            outcome = MergeOutcome.ADDED
        else:
            existing = self.store[index]
            if existing == incoming:
                outcome = MergeOutcome.IDENTICAL
            elif self._resolve_conflict(existing, incoming) is MergeDecision.KEEP:
                self.store.append(incoming)
                outcome = MergeOutcome.DUPLICATED
            else:
                self.store.replace(index, incoming)
                outcome = MergeOutcome.REPLACED

        logger.debug(f"'{incoming.title}': {outcome.value}")
        self.report.count(outcome)
        return outcome

    def merge_all(self, records: Iterable[Record]) -> MergeReport:
        """Merge every record and return the running report."""
        for record in records:
            self.merge(record)
        return self.report


def import_text(
    database: MathPadDatabase,
    stream: TextIO,
    decide: Optional[DecisionCallback] = None,
    config: Optional[ToolConfig] = None,
    overwrite_all: bool = False,
) -> MergeReport:
    """
    Parse a text stream and merge its records into database.

    New category names are added to the database's category table as they
    are encountered.

    Returns:
        The merge report
    """
    parser = TextImportParser(stream, database.categories, config)
    engine = MergeEngine(database.records, decide, overwrite_all)
    report = engine.merge_all(parser.iter_records())
    logger.info(
        f"Imported {report.total} records: {report.added} added, "
        f"{report.replaced} replaced, {report.duplicated} duplicated, "
        f"{report.identical} unchanged"
    )
    return report
