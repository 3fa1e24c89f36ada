"""Statement reconciliation: filter, dedup and upsert aggregated rows.

Each aggregated row passes through the same fixed sequence of checks
and ends in exactly one outcome: imported, updated, or skipped with one
:class:`SkipReason`.  A dry run walks the identical path and only
suppresses the writes, so its counters match what a real run produces.

Usage::

    engine = ReconciliationEngine(store)
    summary = await engine.process(grouped_rows, options)
    print(summary.to_payload())
"""

from __future__ import annotations

from datetime import tzinfo, timezone
from typing import Any, Sequence

from volume_journal.core.enums import ImportDecision, SkipReason
from volume_journal.core.errors import PersistenceError
from volume_journal.core.interfaces import ITradeStore
from volume_journal.core.models import (
    AggregatedImportRow,
    ImportDebug,
    ImportOptions,
    ImportSummary,
)
from volume_journal.observability.logger import get_logger, run_scope

from .aggregator import group_rows
from .parser import parse_statement

logger = get_logger(__name__)

BAD_DATE_HINT = (
    "Close date format not recognised. Supported: dd.mm.yy(yy), "
    "dd/mm/yy(yy) and yyyy-mm-dd, each with HH:mm or HH:mm:ss."
)


def legacy_key(open_order_id: str, close_order_id: str) -> str | None:
    """Pair key used by imports made before keys were open-order only."""
    if not open_order_id and not close_order_id:
        return None
    return f"{open_order_id}|{close_order_id}"


def check_row(row: AggregatedImportRow, instrument: str) -> SkipReason | None:
    """First rejection reason for *row*, or ``None`` if it is importable."""
    if not row.symbol or not row.symbol.upper().startswith(f"{instrument}("):
        return SkipReason.FILTERED_INSTRUMENT
    if row.close_date is None:
        return SkipReason.NO_CLOSE_DATE
    if row.size is None or row.pnl is None:
        return SkipReason.BAD_NUMBERS
    if row.size == 0:
        return SkipReason.ZERO_SIZE
    return None


def build_document(row: AggregatedImportRow, options: ImportOptions) -> dict[str, Any]:
    """Trade document persisted for an accepted row."""
    doc: dict[str, Any] = {
        "instrument": options.instrument,
        "side": row.side,
        "size": row.size,
        "contracts": row.size,
        "pnl": row.pnl,
        "fee": row.fee if row.fee is not None else 0,
        "open_price": row.open_price,
        "close_price": row.close_price,
        "open_date": row.open_date,
        "close_date": row.close_date,
        "is_profit": row.pnl is not None and row.pnl >= 0,
        "net_r": None,  # Known only once a stop is entered
        "source": options.source,
        "external_key": row.open_order_id or None,
        "open_order_id": row.open_order_id,
        "close_order_id": row.close_order_id,
    }
    if options.price_per_point is not None:
        doc["price_per_point"] = options.price_per_point
    for name in ("pips", "drawdown", "drawdown_cash"):
        value = getattr(row, name)
        if value is not None:
            doc[name] = value
    return doc


class ReconciliationEngine:
    """Decide insert / update / skip for each aggregated statement row.

    Parameters
    ----------
    store : ITradeStore
        Trade store used for dedup lookups and writes.  A
        :class:`PersistenceError` from it aborts the run; counters
        accumulated up to that point are still returned.
    """

    def __init__(self, store: ITradeStore) -> None:
        self._store = store

    async def process(
        self,
        rows: Sequence[AggregatedImportRow],
        options: ImportOptions,
    ) -> ImportSummary:
        with run_scope(
            "import",
            owner_id=options.owner_id,
            instrument=options.instrument,
            dry_run=options.dry_run,
            update_mode=options.update_mode,
        ):
            return await self._run(rows, options)

    async def _run(
        self,
        rows: Sequence[AggregatedImportRow],
        options: ImportOptions,
    ) -> ImportSummary:
        logger.info("import.start", rows=len(rows))

        summary = ImportSummary()
        seen: set[str] = set()
        bad_dates: list[str] = []

        try:
            for row in rows:
                reason = check_row(row, options.instrument)
                if reason is SkipReason.NO_CLOSE_DATE:
                    raw = row.close_date_raw.strip()
                    if raw and raw not in bad_dates and len(bad_dates) < options.bad_date_sample_limit:
                        bad_dates.append(raw)
                if reason is not None:
                    logger.debug("import.skip", reason=reason.value, line=row.line_number)
                    summary.skip(reason)
                    continue

                doc = build_document(row, options)
                if len(summary.sample) < options.sample_limit:
                    summary.sample.append({**doc, "owner_id": options.owner_id})

                key = doc["external_key"]
                if key is not None:
                    if key in seen:
                        logger.debug("import.skip", reason=SkipReason.DUPLICATE_IN_FILE.value, key=key)
                        summary.skip(SkipReason.DUPLICATE_IN_FILE)
                        continue
                    seen.add(key)

                decision = await self._decide(row, doc, options)
                if decision is ImportDecision.INSERT:
                    summary.imported += 1
                elif decision is ImportDecision.UPDATE:
                    summary.updated += 1
                else:
                    summary.skip(SkipReason.DUPLICATE)
        except PersistenceError as exc:
            logger.error(
                "import.store_failed",
                error=str(exc),
                imported=summary.imported,
                updated=summary.updated,
                skipped=summary.skipped,
            )
            summary.ok = False
            summary.error = str(exc)

        if bad_dates:
            summary.debug = ImportDebug(bad_close_date_samples=bad_dates, hint=BAD_DATE_HINT)

        logger.info(
            "import.finish",
            ok=summary.ok,
            imported=summary.imported,
            updated=summary.updated,
            skipped=summary.skipped,
            reasons=summary.reasons,
        )
        return summary

    async def _decide(
        self,
        row: AggregatedImportRow,
        doc: dict[str, Any],
        options: ImportOptions,
    ) -> ImportDecision:
        key = doc["external_key"]
        if key is not None:
            existing = await self._store.find_existing(
                options.owner_id,
                key,
                legacy_key=legacy_key(row.open_order_id, row.close_order_id),
                open_order_id=row.open_order_id or None,
            )
            if existing is not None:
                if not options.update_mode or options.dry_run:
                    return ImportDecision.SKIP
                # Keys left out of doc stay untouched; None overwrites.
                fields = dict(doc, external_key=row.open_order_id)
                await self._store.set_fields(options.owner_id, existing.id, fields)
                return ImportDecision.UPDATE

        if not options.dry_run:
            await self._store.insert(options.owner_id, doc)
        return ImportDecision.INSERT


async def import_statement(
    text: str,
    store: ITradeStore,
    options: ImportOptions,
    tz: tzinfo = timezone.utc,
) -> ImportSummary:
    """Parse, aggregate and reconcile one statement export."""
    rows = group_rows(parse_statement(text, tz))
    return await ReconciliationEngine(store).process(rows, options)
