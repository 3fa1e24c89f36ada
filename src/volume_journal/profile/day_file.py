"""Volume-day CSV reader.

Reads the per-price export of an order-flow platform (price, volume,
aggressor delta, optionally a time column) into :class:`PriceVolumeRow`
objects and works out which trading day(s) the file covers.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo

from volume_journal.core.models import PriceVolumeRow
from volume_journal.statements.headers import DAY_FILE_PATTERNS, resolve_header_patterns
from volume_journal.statements.parser import parse_statement_date, split_lines, to_number

logger = logging.getLogger(__name__)

# Column positions used when the header carries no recognisable name.
FALLBACK_COLUMNS = {"price": 1, "volume": 2, "delta": 5}

UNKNOWN_DAY = "unknown"

_FILENAME_DATE = re.compile(r"(\d{2})\.(\d{2})\.(\d{2,4})")
_ISO_OFFSET = re.compile(r"^\d{4}-\d{2}-\d{2}T")


@dataclass
class DayFile:
    """Rows read from one volume-day file plus the day keys they cover."""

    rows: list[PriceVolumeRow] = field(default_factory=list)
    dates: list[str] = field(default_factory=list)
    file_name: str = ""


def detect_day_delimiter(header_line: str) -> str:
    """Tab when the header has one, else ``;`` or ``,`` by count."""
    if "\t" in header_line:
        return "\t"
    return ";" if header_line.count(";") >= header_line.count(",") else ","


def guess_date_from_filename(name: str) -> str | None:
    """``YYYY-MM-DD`` from a ``dd.mm.yy(yy)`` fragment of a file name."""
    m = _FILENAME_DATE.search(name or "")
    if not m:
        return None
    dd, mm, yy = m.groups()
    year = f"20{yy}" if len(yy) == 2 else yy
    try:
        return date(int(year), int(mm), int(dd)).isoformat()
    except ValueError:
        return None


def parse_row_time(value: str, tz: tzinfo = timezone.utc) -> datetime | None:
    """Timestamp of a day-file row, or ``None``.

    Accepts full ISO 8601 (with an offset or ``Z``) in addition to the
    statement date formats.
    """
    s = (value or "").strip().strip('"')
    if not s:
        return None
    if _ISO_OFFSET.match(s):
        try:
            ts = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            return None
        return ts if ts.tzinfo else ts.replace(tzinfo=tz)
    return parse_statement_date(s, tz)


def _number(cols: list[str], idx: int) -> float:
    if idx < 0 or idx >= len(cols):
        return 0.0
    n = to_number(cols[idx].strip().strip('"'))
    return float(n) if n is not None else 0.0


def parse_day_file(text: str, file_name: str = "", tz: tzinfo = timezone.utc) -> DayFile:
    """Parse a volume-day export.

    Rows with a zero or unparseable price are dropped; other unparseable
    numbers read as 0.  When no row carries a usable timestamp the day is
    taken from a ``dd.mm.yy(yy)`` date in *file_name*.
    """
    lines = split_lines(text)
    if not lines:
        return DayFile(file_name=file_name)

    delimiter = detect_day_delimiter(lines[0])
    columns = resolve_header_patterns(lines[0].split(delimiter), DAY_FILE_PATTERNS)
    price_i = columns.get("price", FALLBACK_COLUMNS["price"])
    vol_i = columns.get("volume", FALLBACK_COLUMNS["volume"])
    delta_i = columns.get("delta", FALLBACK_COLUMNS["delta"])
    date_i = columns.get("date", -1)

    rows: list[PriceVolumeRow] = []
    dates: list[str] = []
    for line in lines[1:]:
        cols = line.split(delimiter)
        if price_i >= len(cols):
            continue
        price = to_number(cols[price_i].strip().strip('"'))
        if price is None or price == 0:
            continue

        ts = parse_row_time(cols[date_i], tz) if 0 <= date_i < len(cols) else None
        rows.append(
            PriceVolumeRow(
                price=price,
                volume=max(0.0, _number(cols, vol_i)),
                delta_aggregate=_number(cols, delta_i),
                timestamp=ts,
            )
        )
        if ts is not None:
            key = ts.date().isoformat()
            if key not in dates:
                dates.append(key)

    if not dates:
        guessed = guess_date_from_filename(file_name)
        if guessed:
            dates.append(guessed)

    logger.debug("Read %d rows over %d day(s) from %s", len(rows), len(dates), file_name or "<text>")
    return DayFile(rows=rows, dates=dates, file_name=file_name)


def split_by_day(day_file: DayFile) -> dict[str, list[PriceVolumeRow]]:
    """Bucket rows per day key.

    Timestamped rows go to their own day; rows without a time belong to
    every day the file covers.  A file with no day at all is filed under
    ``"unknown"``.
    """
    if not day_file.rows:
        return {}
    if not day_file.dates:
        return {UNKNOWN_DAY: list(day_file.rows)}

    buckets: dict[str, list[PriceVolumeRow]] = {}
    for key in day_file.dates:
        part = [
            r for r in day_file.rows
            if r.timestamp is None or r.timestamp.date().isoformat() == key
        ]
        if part:
            buckets[key] = part
    return buckets
