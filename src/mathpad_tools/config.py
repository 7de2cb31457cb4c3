"""
MathPad Tools - Configuration
=============================

Settings shared by the exporter, the importer and the binary codec.
Configuration can come from:
- Default values (defined here)
- Environment variables (via ToolConfig.from_env)

The defaults reproduce the behaviour of the handheld application: a record
imported without a "Places = ..." line gets 14 decimal places with trailing
zeros stripped, and text files use Latin-1 so that every byte stored on the
handheld survives a trip through the text format.
"""

from dataclasses import dataclass
import codecs
import logging
import os

logger = logging.getLogger(__name__)

# Record separator line in the text interchange format (27 tildes)
SEPARATOR_LINE = "~" * 27

DEFAULT_TEXT_ENCODING = "latin-1"
DEFAULT_PLACES = 14
DEFAULT_STRIP_ZEROS = True


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ToolConfig:
    """
    Configuration for MathPad database conversion.

    Attributes:
        text_encoding: Character set used for record text, both inside the
            binary database and in exported text files (default: latin-1)
        default_places: Decimal places for imports lacking a Places line
        default_strip_zeros: StripZeros flag for imports lacking a Places line
        separator: Line that terminates each record in the text format
    """

    text_encoding: str = DEFAULT_TEXT_ENCODING
    default_places: int = DEFAULT_PLACES
    default_strip_zeros: bool = DEFAULT_STRIP_ZEROS
    separator: str = SEPARATOR_LINE

    @classmethod
    def from_env(cls) -> "ToolConfig":
        """
        Create ToolConfig from environment variables.

        Environment variables (all optional):
            MATHPAD_TEXT_ENCODING: Python codec name (e.g. "cp1252")
            MATHPAD_DEFAULT_PLACES: Integer 0-255
            MATHPAD_DEFAULT_STRIP_ZEROS: 1/0, true/false, yes/no

        Invalid values are ignored with a warning and the default is kept.

        Returns:
            ToolConfig with values from environment variables
        """
        config = cls()

        if encoding := os.environ.get("MATHPAD_TEXT_ENCODING"):
            try:
                config.text_encoding = codecs.lookup(encoding).name
            except LookupError:
                logger.warning(f"Ignoring unknown MATHPAD_TEXT_ENCODING '{encoding}'")

        if places := os.environ.get("MATHPAD_DEFAULT_PLACES"):
            try:
                value = int(places)
                if not 0 <= value <= 0xFF:
                    raise ValueError(places)
                config.default_places = value
            except ValueError:
                logger.warning(f"Ignoring invalid MATHPAD_DEFAULT_PLACES '{places}'")

        if strip := os.environ.get("MATHPAD_DEFAULT_STRIP_ZEROS"):
            config.default_strip_zeros = _parse_bool(strip)

        return config
