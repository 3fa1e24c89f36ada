"""Enumerations used across the volume journal."""

from enum import Enum


class TradeSide(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def sign(self) -> int:
        """+1 for LONG, -1 for SHORT."""
        return 1 if self is TradeSide.LONG else -1

    @classmethod
    def from_statement(cls, value: str | None) -> "TradeSide | None":
        """Map a broker statement side (BUY/SELL) to a trade side.

        Returns ``None`` for a blank or unrecognised side.
        """
        v = str(value or "").strip().upper()
        if v in ("BUY", "B", "LONG"):
            return cls.LONG
        if v in ("SELL", "S", "SHORT"):
            return cls.SHORT
        return None


class GateMode(str, Enum):
    FADE = "FADE"
    BREAKOUT = "BREAKOUT"


class SkipReason(str, Enum):
    """Every skipped statement row is attributed to exactly one of these."""

    FILTERED_INSTRUMENT = "filteredInstrument"
    BAD_NUMBERS = "badNumbers"
    ZERO_SIZE = "zeroSize"
    NO_CLOSE_DATE = "noCloseDate"
    DUPLICATE = "duplicate"
    DUPLICATE_IN_FILE = "duplicateInFile"


class ImportDecision(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    SKIP = "skip"
