"""
Category Table (App Info Block)
===============================

Every MathPad record carries a category index in its list entry. The names
behind those indexes live in the database's app info block, shared by all
records:

    Offset  Size    Description
    ------  ----    -----------
    0       2       Renamed-categories bit mask
    2       256     16 category labels, 16 bytes each (NUL padded)
    258     16      Unique ID of each category slot
    274     1       Last unique ID assigned
    275     1       Pad byte
    276     34      MathPad application settings (kept as-is)

Slot 0 is always "Unfiled". A slot is occupied when its label is non-empty,
and every occupied slot has a unique ID distinct from all other slots.
Unique IDs identify slots to the desktop sync software; they have nothing
to do with record identity.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional
import logging
import struct

from mathpad_tools.config import DEFAULT_TEXT_ENCODING
from mathpad_tools.db.endian import FILE_BYTE_ORDER
from mathpad_tools.errors import CategoryTableFull, DatabaseFormatError

logger = logging.getLogger(__name__)


NUM_CATEGORIES = 16
CATEGORY_LENGTH = 16
MAX_LABEL_LENGTH = CATEGORY_LENGTH - 1
UNFILED_CATEGORY = 0
UNFILED_LABEL = "Unfiled"

APP_DATA_SIZE = 34

APP_INFO_FORMAT = (
    FILE_BYTE_ORDER
    + "H"
    + f"{CATEGORY_LENGTH}s" * NUM_CATEGORIES
    + f"{NUM_CATEGORIES}B"
    + "BB"
    + f"{APP_DATA_SIZE}s"
)
APP_INFO_SIZE = struct.calcsize(APP_INFO_FORMAT)                # 310


def _empty_labels() -> list[str]:
    return [UNFILED_LABEL] + [""] * (NUM_CATEGORIES - 1)


def truncate_label(name: str, encoding: str = DEFAULT_TEXT_ENCODING) -> str:
    """
    Shorten name until it fits a label slot once encoded.

    Characters are dropped whole from the end, so a multi-byte character is
    never split. Characters the encoding cannot represent are measured as
    one byte; they are rejected later, when the table is serialized.
    """
    while len(name.encode(encoding, errors="replace")) > MAX_LABEL_LENGTH:
        name = name[:-1]
    return name


@dataclass
class CategoryTable:
    """
    The 16-slot category table stored in the app info block.

    Attributes:
        labels: Category names, "" for an unused slot
        unique_ids: Per-slot unique IDs (0-255)
        last_unique_id: The most recently assigned unique ID
        renamed: Bit mask of categories renamed on the handheld
        padding: Pad byte following last_unique_id
        app_data: MathPad's own settings that follow the category table
        encoding: Character set of the labels on disk; label length limits
            are counted in its bytes
    """
    labels: list[str] = field(default_factory=_empty_labels)
    unique_ids: list[int] = field(default_factory=lambda: [0] * NUM_CATEGORIES)
    last_unique_id: int = 0
    renamed: int = 0
    padding: int = 0
    app_data: bytes = field(default=bytes(APP_DATA_SIZE), repr=False)
    encoding: str = field(default=DEFAULT_TEXT_ENCODING, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.labels) != NUM_CATEGORIES or len(self.unique_ids) != NUM_CATEGORIES:
            raise ValueError(f"A category table has exactly {NUM_CATEGORIES} slots")

    # =========================================================================
    # Queries
    # =========================================================================

    def label(self, index: int) -> str:
        """Get the name of a category slot ("" if unused)."""
        return self.labels[index]

    def is_occupied(self, index: int) -> bool:
        return bool(self.labels[index])

    def occupied_slots(self) -> Iterator[int]:
        """Yield the index of every slot holding a category."""
        for index in range(NUM_CATEGORIES):
            if self.is_occupied(index):
                yield index

    def is_full(self) -> bool:
        return all(self.labels)

    def lookup_by_name(self, name: str) -> Optional[int]:
        """
        Find the slot holding a category name.

        The comparison is exact and case-sensitive, as on the handheld.

        Returns:
            The slot index, or None if no slot has that name
        """
        for index, label in enumerate(self.labels):
            if label == name:
                return index
        return None

    # =========================================================================
    # Allocation
    # =========================================================================

    def next_unique_id(self) -> int:
        """
        Produce a unique ID distinct from the IDs of all 16 slots.

        The running last_unique_id counter is advanced (wrapping at 256)
        until it lands on a value no slot carries, empty slots included.
        There are only 16 slots, so a free value is always found.
        """
        in_use = set(self.unique_ids)
        candidate = self.last_unique_id
        while True:
            candidate = (candidate + 1) & 0xFF
            if candidate not in in_use:
                break
        self.last_unique_id = candidate
        return candidate

    def allocate_slot(self, name: str) -> int:
        """
        Store a new category in the first unused slot.

        Names longer than 15 bytes in the table's encoding are truncated.

        Returns:
            The index of the newly filled slot

        Raises:
            CategoryTableFull: If all 16 slots are in use
        """
        name = truncate_label(name, self.encoding)
        for index, label in enumerate(self.labels):
            if not label:
                self.unique_ids[index] = self.next_unique_id()
                self.labels[index] = name
                logger.debug(
                    f"Added category '{name}' in slot {index} "
                    f"(unique ID {self.unique_ids[index]})"
                )
                return index
        raise CategoryTableFull(name)

    def resolve(self, name: str) -> int:
        """
        Find or create the slot for a category name.

        An empty name, or a name that cannot be added because the table is
        full, resolves to the Unfiled category.
        """
        name = truncate_label(name, self.encoding)
        if not name:
            return UNFILED_CATEGORY

        index = self.lookup_by_name(name)
        if index is not None:
            return index

        try:
            return self.allocate_slot(name)
        except CategoryTableFull as e:
            logger.warning(f"{e}; filing records under '{self.labels[UNFILED_CATEGORY]}'")
            return UNFILED_CATEGORY

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_bytes(self, encoding: Optional[str] = None) -> bytes:
        """
        Serialize the table and the trailing MathPad settings (310 bytes).

        Raises:
            DatabaseFormatError: If a label cannot be encoded or does not fit
                its slot
        """
        encoding = encoding or self.encoding
        labels = []
        for label in self.labels:
            try:
                raw = label.encode(encoding)
            except UnicodeEncodeError as e:
                raise DatabaseFormatError(
                    f"Category '{label}' cannot be encoded as {encoding}: {e}"
                ) from e
            if len(raw) > MAX_LABEL_LENGTH:
                raise DatabaseFormatError(
                    f"Category '{label}' is longer than {MAX_LABEL_LENGTH} bytes"
                )
            labels.append(raw)

        return struct.pack(
            APP_INFO_FORMAT,
            self.renamed,
            *labels,
            *self.unique_ids,
            self.last_unique_id,
            self.padding,
            self.app_data.ljust(APP_DATA_SIZE, b"\x00")[:APP_DATA_SIZE],
        )

    @classmethod
    def from_bytes(cls, data: bytes, encoding: str = DEFAULT_TEXT_ENCODING) -> "CategoryTable":
        """Deserialize the app info block."""
        if len(data) < APP_INFO_SIZE:
            raise ValueError(f"App info too short: need {APP_INFO_SIZE} bytes, got {len(data)}")

        fields = struct.unpack_from(APP_INFO_FORMAT, data)
        renamed = fields[0]
        raw_labels = fields[1:1 + NUM_CATEGORIES]
        unique_ids = list(fields[1 + NUM_CATEGORIES:1 + 2 * NUM_CATEGORIES])
        last_unique_id, padding, app_data = fields[1 + 2 * NUM_CATEGORIES:]

        labels = [
            raw.split(b"\x00", 1)[0].decode(encoding, errors="replace")
            for raw in raw_labels
        ]
        return cls(
            labels=labels,
            unique_ids=unique_ids,
            last_unique_id=last_unique_id,
            renamed=renamed,
            padding=padding,
            app_data=app_data,
            encoding=encoding,
        )
