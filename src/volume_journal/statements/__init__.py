"""Broker statement import: parse, aggregate by order, reconcile."""

from volume_journal.statements.aggregator import group_rows
from volume_journal.statements.parser import (
    detect_delimiter,
    parse_statement,
    parse_statement_date,
    rows_from_records,
    to_number,
)
from volume_journal.statements.reconciler import (
    ReconciliationEngine,
    import_statement,
)

__all__ = [
    "detect_delimiter",
    "group_rows",
    "import_statement",
    "parse_statement",
    "parse_statement_date",
    "rows_from_records",
    "to_number",
    "ReconciliationEngine",
]
