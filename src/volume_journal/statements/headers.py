"""Header synonym tables for broker statements and volume-day files.

Headers are resolved once at parse time: each canonical field maps to
the spellings accepted for it (English, German, Russian).  Matching is
case-insensitive on the trimmed, whitespace-collapsed header text.
"""

from __future__ import annotations

import re
from typing import Mapping, Sequence

# Canonical statement field -> accepted spellings (lower case).
STATEMENT_HEADERS: dict[str, tuple[str, ...]] = {
    "symbol": ("symbol", "instrument", "ticker", "contract", "symbol/contract",
               "kontrakt", "символ", "инструмент", "тикер"),
    "side": ("side", "direction", "buy/sell", "type", "richtung", "seite",
             "kauf/verkauf", "сторона", "направление", "тип"),
    "size": ("size", "qty", "quantity", "contracts", "lots", "menge", "größe",
             "anzahl", "kontrakte", "объем", "объём", "размер", "количество", "лоты"),
    "pnl": ("p&l", "pnl", "p/l", "profit", "profit/loss", "net p&l", "gewinn",
            "g/v", "gewinn/verlust", "прибыль", "п/у", "прибыль/убыток"),
    "fee": ("fee", "fees", "commission", "commissions", "gebühr", "gebühren",
            "provision", "комиссия", "комиссии"),
    "open_price": ("open price", "open", "entry price", "eröffnungskurs",
                   "einstiegskurs", "einstiegspreis", "цена открытия", "цена входа"),
    "close_price": ("close price", "close", "exit price", "schlusskurs",
                    "ausstiegskurs", "ausstiegspreis", "цена закрытия", "цена выхода"),
    "open_date": ("open date", "open time", "entry time", "entry date",
                  "eröffnungsdatum", "eröffnungszeit", "einstiegszeit",
                  "дата открытия", "время открытия"),
    "close_date": ("close date", "close time", "exit time", "exit date",
                   "schlussdatum", "schlusszeit", "ausstiegszeit",
                   "дата закрытия", "время закрытия"),
    "open_order_id": ("open order", "open order id", "entry order", "eröffnungsorder",
                      "einstiegsorder", "ордер открытия", "заявка открытия"),
    "close_order_id": ("close order", "close order id", "exit order", "schlussorder",
                       "ausstiegsorder", "ордер закрытия", "заявка закрытия"),
    "pips": ("pips", "points", "ticks", "punkte", "pips/punkte", "пункты", "пипсы"),
    "drawdown": ("drawdown", "max drawdown", "rückgang", "просадка"),
    "drawdown_cash": ("cash drawdown", "drawdown $", "drawdown cash", "geld-rückgang",
                      "денежная просадка", "просадка $"),
}

# Volume-day file columns are matched by pattern, first match wins.
DAY_FILE_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "price": (re.compile(r"^price$", re.I), re.compile(r"^preis", re.I),
              re.compile(r"^цена", re.I)),
    "volume": (re.compile(r"^volume$", re.I), re.compile(r"^volumen$", re.I),
               re.compile(r"^об.?ём$", re.I), re.compile(r"^объем$", re.I)),
    "delta": (re.compile(r"now\s*delta.*aggr", re.I), re.compile(r"delta.*aggr", re.I),
              re.compile(r"aggressor", re.I), re.compile(r"агресс", re.I)),
    "date": (re.compile(r"^date$", re.I), re.compile(r"time", re.I),
             re.compile(r"^datum", re.I), re.compile(r"^zeit", re.I),
             re.compile(r"^время", re.I), re.compile(r"^дата", re.I)),
}

_WS = re.compile(r"\s+")


def normalize_header(name: object) -> str:
    """Lower-case, trim quotes/BOM and collapse inner whitespace."""
    s = str(name or "").replace("\ufeff", "").strip().strip('"').strip()
    return _WS.sub(" ", s).lower()


def _reverse(table: Mapping[str, Sequence[str]]) -> dict[str, str]:
    out: dict[str, str] = {}
    for canonical, spellings in table.items():
        for spelling in spellings:
            out.setdefault(spelling, canonical)
    return out


_STATEMENT_LOOKUP = _reverse(STATEMENT_HEADERS)


def canonical_field(name: object) -> str | None:
    """Canonical statement field for a header spelling, if known."""
    return _STATEMENT_LOOKUP.get(normalize_header(name))


def resolve_headers(header: Sequence[str]) -> dict[str, int]:
    """Map canonical statement fields to column indexes.

    The first column carrying a given field wins; unknown columns are
    ignored.
    """
    index: dict[str, int] = {}
    for i, name in enumerate(header):
        canonical = canonical_field(name)
        if canonical is not None and canonical not in index:
            index[canonical] = i
    return index


def resolve_header_patterns(
    header: Sequence[str],
    patterns: Mapping[str, Sequence[re.Pattern[str]]] = DAY_FILE_PATTERNS,
) -> dict[str, int]:
    """Map fields to column indexes by regex.

    For each field the leftmost column matching any of its patterns wins.
    """
    cleaned = [normalize_header(h) for h in header]
    index: dict[str, int] = {}
    for field, regexes in patterns.items():
        for i, h in enumerate(cleaned):
            if any(rx.search(h) for rx in regexes):
                index[field] = i
                break
    return index
