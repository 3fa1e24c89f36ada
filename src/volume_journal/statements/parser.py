"""Broker statement parsing: CSV text -> typed :class:`ImportRow` list.

The parser reads the text in two passes (delimiter sniff over the head,
then the full parse).  Bad numbers and dates degrade to ``None`` and are
attributed to a skip reason later; only a statement without a header
raises.

Usage::

    rows = parse_statement(text)
    rows = rows_from_records([{"Symbol": "ES(Z5)", "Size": "1", ...}])
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from volume_journal.core.errors import StatementFormatError
from volume_journal.core.models import ImportRow

from .headers import canonical_field, resolve_headers

logger = logging.getLogger(__name__)

DELIMITER_SNIFF_CHARS = 2000
REQUIRED_COLUMNS = ("symbol", "size", "pnl", "close_date")

_LINE_SPLIT = re.compile(r"\r\n|\r|\n")
_THIN_SPACES = re.compile(r"[\u00a0\u2009\u202f]")
_CURRENCY = re.compile(r"[$€£₽]")
_WS = re.compile(r"\s+")
_DIRECTION_MARKS = re.compile(r"[\u200e\u200f]")

_DOTTED = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{2}|\d{4})\s+(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_SLASHED = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})\s+(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_ISO = re.compile(r"^(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2})(?::(\d{2}))?$")


# ---------------------------------------------------------------------------
# Text primitives
# ---------------------------------------------------------------------------

def detect_delimiter(text: str) -> str:
    """``;`` or ``,`` by frequency in the head of *text*; ``;`` wins ties."""
    head = text[:DELIMITER_SNIFF_CHARS]
    return ";" if head.count(";") >= head.count(",") else ","


def split_lines(text: str) -> list[str]:
    """Split on any newline convention, dropping blank lines."""
    return [line for line in _LINE_SPLIT.split(text or "") if line.strip()]


def split_fields(line: str, delimiter: str) -> list[str]:
    """Split one line on *delimiter*, honouring double-quoted fields.

    Quotes toggle the in-quote state and are not kept; a doubled quote
    inside a quoted field is a literal quote.  Fields are trimmed.
    """
    fields: list[str] = []
    buf: list[str] = []
    in_quote = False
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == '"':
            if in_quote and i + 1 < len(line) and line[i + 1] == '"':
                buf.append('"')
                i += 1
            else:
                in_quote = not in_quote
        elif ch == delimiter and not in_quote:
            fields.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
        i += 1
    fields.append("".join(buf).strip())
    return fields


def to_number(value: Any) -> Decimal | None:
    """Parse a statement number; ``None`` when it is not numeric.

    Handles non-breaking/thin spaces, currency symbols anywhere in the
    string (``-$12.50``, ``$-12.50``), and comma decimal separators.
    When both ``,`` and ``.`` occur, the later one is the decimal point.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        n = Decimal(str(value))
        return n if n.is_finite() else None

    s = _THIN_SPACES.sub(" ", str(value))
    s = _CURRENCY.sub("", s).strip()
    negative = s.startswith("-")
    s = _WS.sub("", s.lstrip("-+ "))

    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    else:
        s = s.replace(",", ".", 1)

    try:
        n = Decimal(s)
    except InvalidOperation:
        return None
    if not n.is_finite():
        return None
    return -abs(n) if negative else abs(n)


def _year(raw: str) -> int:
    y = int(raw)
    if len(raw) == 2:
        return 2000 + y if y < 70 else 1900 + y
    return y


def parse_statement_date(value: Any, tz: tzinfo = timezone.utc) -> datetime | None:
    """Parse ``dd.mm.yy(yy) HH:mm[:ss]``, ``dd/mm/yy(yy) HH:mm[:ss]`` or
    ``yyyy-mm-dd[ T]HH:mm[:ss]``; anything else is ``None``.

    Statement times are wall-clock times in *tz*.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=tz)

    s = _DIRECTION_MARKS.sub("", str(value)).strip()
    try:
        m = _DOTTED.match(s) or _SLASHED.match(s)
        if m:
            dd, mm, yy, hh, mi, ss = m.groups()
            return datetime(_year(yy), int(mm), int(dd), int(hh), int(mi), int(ss or 0), tzinfo=tz)
        m = _ISO.match(s)
        if m:
            y, mo, d, hh, mi, ss = m.groups()
            return datetime(int(y), int(mo), int(d), int(hh), int(mi), int(ss or 0), tzinfo=tz)
    except ValueError:
        # Matched the shape but not the calendar (e.g. 31.02.25)
        return None
    return None


# ---------------------------------------------------------------------------
# Row construction
# ---------------------------------------------------------------------------

def _text(fields: Mapping[str, Any], name: str) -> str:
    v = fields.get(name)
    return "" if v is None else str(v).strip()


def _build_row(fields: Mapping[str, Any], line_number: int | None, tz: tzinfo) -> ImportRow:
    open_raw = _text(fields, "open_date")
    close_raw = _text(fields, "close_date")
    return ImportRow(
        symbol=_text(fields, "symbol"),
        side=_text(fields, "side").upper(),
        size=to_number(fields.get("size")),
        pnl=to_number(fields.get("pnl")),
        fee=to_number(fields.get("fee")),
        open_price=to_number(fields.get("open_price")),
        close_price=to_number(fields.get("close_price")),
        open_date=parse_statement_date(fields.get("open_date"), tz),
        close_date=parse_statement_date(fields.get("close_date"), tz),
        open_date_raw=open_raw,
        close_date_raw=close_raw,
        open_order_id=_text(fields, "open_order_id"),
        close_order_id=_text(fields, "close_order_id"),
        pips=to_number(fields.get("pips")),
        drawdown=to_number(fields.get("drawdown")),
        drawdown_cash=to_number(fields.get("drawdown_cash")),
        line_number=line_number,
    )


def parse_statement(text: str, tz: tzinfo = timezone.utc) -> list[ImportRow]:
    """Parse a broker statement export into typed rows.

    Raises
    ------
    StatementFormatError
        When *text* has no header line.
    """
    lines = split_lines(text)
    if not lines:
        raise StatementFormatError("Statement is empty")

    delimiter = detect_delimiter(text)
    header = split_fields(lines[0], delimiter)
    columns = resolve_headers(header)
    if not columns:
        raise StatementFormatError(f"No known statement columns in header: {header!r}")

    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        logger.warning("Statement header lacks columns %s", ", ".join(missing))

    rows: list[ImportRow] = []
    for line_number, line in enumerate(lines[1:], start=2):
        values = split_fields(line, delimiter)
        if not any(values):
            continue
        fields = {
            name: values[idx] if idx < len(values) else ""
            for name, idx in columns.items()
        }
        rows.append(_build_row(fields, line_number, tz))

    logger.info("Parsed %d statement rows (delimiter=%r)", len(rows), delimiter)
    return rows


def rows_from_records(
    records: Iterable[Mapping[str, Any]],
    tz: tzinfo = timezone.utc,
) -> list[ImportRow]:
    """Build rows from already-split records keyed by header spelling."""
    rows: list[ImportRow] = []
    for i, record in enumerate(records, start=1):
        fields: dict[str, Any] = {}
        for key, value in record.items():
            canonical = canonical_field(key)
            if canonical is not None and canonical not in fields:
                fields[canonical] = value
        rows.append(_build_row(fields, i, tz))
    return rows
