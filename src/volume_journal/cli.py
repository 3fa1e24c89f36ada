"""CLI entry point for the volume journal."""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import click

from .core.enums import GateMode, TradeSide
from .core.errors import JournalError


def _settings(config: str | None):
    from .core.config import load_settings
    from .observability.logger import setup_logging

    settings = load_settings(config)
    setup_logging(settings.observability.log_level, settings.observability.log_format)
    return settings


def _decimal(value: str | None, name: str) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        raise click.BadParameter(f"not a number: {value!r}", param_hint=name) from None


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _read(path: str) -> str:
    return Path(path).read_text(encoding="utf-8-sig")


@click.group()
def main() -> None:
    """Volume journal: statement import and entry-quality analytics."""


@main.command("import-statement")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--instrument", default=None, help="Instrument code (default from config)")
@click.option("--tick-size", default=None, help="Tick size override")
@click.option("--tick-value", default=None, help="Tick value override ($ per tick per contract)")
@click.option("--owner", default="local", show_default=True, help="Owner id to import for")
@click.option("--dry-run/--no-dry-run", default=False, help="Decide everything, write nothing")
@click.option("--update", "update_mode", is_flag=True, help="Overwrite trades that already exist")
@click.option("--memory", is_flag=True, help="Use an empty in-memory store instead of the database")
@click.option("--config", default=None, help="Config file path")
def import_statement_cmd(
    path: str,
    instrument: str | None,
    tick_size: str | None,
    tick_value: str | None,
    owner: str,
    dry_run: bool,
    update_mode: bool,
    memory: bool,
    config: str | None,
) -> None:
    """Import a broker statement CSV into the trade store."""
    import asyncio

    from .statements.reconciler import import_statement

    try:
        settings = _settings(config)
        options = settings.import_options(
            owner,
            instrument,
            tick_size=_decimal(tick_size, "--tick-size"),
            tick_value=_decimal(tick_value, "--tick-value"),
            dry_run=dry_run,
            update_mode=update_mode,
        )
        text = _read(path)
        tz = settings.imports.statement_tz

        async def run():
            if memory:
                from .storage.memory_store import InMemoryTradeStore

                return await import_statement(text, InMemoryTradeStore(), options, tz)

            from .storage.postgres.connection import open_database

            async with open_database(settings.database_url) as db:
                async with db.trade_store() as store:
                    return await import_statement(text, store, options, tz)

        summary = asyncio.run(run())
    except JournalError as exc:
        raise click.ClickException(str(exc)) from exc

    _echo_json(summary.to_payload())
    if not summary.ok:
        raise click.ClickException(summary.error or "import aborted")


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--tick-size", default="0.25", show_default=True, help="Instrument tick size")
@click.option("--save", is_flag=True, help="Store each day's rows in the database")
@click.option("--owner", default="local", show_default=True, help="Owner id (with --save)")
@click.option("--instrument", default="ES", show_default=True, help="Instrument code (with --save)")
@click.option("--config", default=None, help="Config file path")
def profile(
    path: str,
    tick_size: str,
    save: bool,
    owner: str,
    instrument: str,
    config: str | None,
) -> None:
    """Print the volume profile of each day in a volume-day file."""
    import asyncio

    from .profile.builder import build_profile
    from .profile.day_file import parse_day_file, split_by_day

    tick = _decimal(tick_size, "--tick-size")
    settings = _settings(config)
    day_file = parse_day_file(_read(path), Path(path).name, settings.imports.statement_tz)
    by_day = split_by_day(day_file)

    out = []
    for day, rows in sorted(by_day.items()):
        summary = build_profile(rows, tick).summary()
        out.append({"day": day, "rows": len(rows), **summary.model_dump(mode="json")})

    if save and by_day:
        from .profile.analysis import upsert_volume_day
        from .storage.postgres.connection import open_database

        async def store() -> None:
            async with open_database(settings.database_url) as db:
                async with db.volume_day_store() as repo:
                    for day, rows in by_day.items():
                        await upsert_volume_day(repo, owner, instrument, day, rows, tick)

        try:
            asyncio.run(store())
        except JournalError as exc:
            raise click.ClickException(str(exc)) from exc

    _echo_json(out)


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--entry-price", required=True, help="Entry price to evaluate")
@click.option(
    "--side",
    type=click.Choice([s.value for s in TradeSide], case_sensitive=False),
    default=TradeSide.LONG.value,
    show_default=True,
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in GateMode], case_sensitive=False),
    default=GateMode.FADE.value,
    show_default=True,
)
@click.option("--tick-size", default="0.25", show_default=True, help="Instrument tick size")
@click.option("--config", default=None, help="Config file path")
def gate(
    path: str,
    entry_price: str,
    side: str,
    mode: str,
    tick_size: str,
    config: str | None,
) -> None:
    """Evaluate a hypothetical entry against the full profile of a volume-day file."""
    from .core.models import Trade
    from .profile.builder import build_profile
    from .profile.day_file import parse_day_file
    from .profile.enricher import enrich
    from .profile.gates import GateEvaluator

    price = _decimal(entry_price, "--entry-price")
    tick = _decimal(tick_size, "--tick-size")
    settings = _settings(config)
    day_file = parse_day_file(_read(path), Path(path).name, settings.imports.statement_tz)
    if not day_file.rows:
        raise click.ClickException(f"No price rows in {path}")

    prof = build_profile(day_file.rows, tick)
    trade = Trade(side=TradeSide(side.upper()), entry_price=price)
    evaluator = GateEvaluator()
    enriched = enrich(trade, prof, tick_size=tick)
    result = evaluator.evaluate(enriched, GateMode(mode.upper()))

    _echo_json({
        "profile": prof.summary().model_dump(mode="json"),
        "trade": enriched.model_dump(mode="json", exclude={"level_score", "gate_pass", "flags"}),
        "gate": result.model_dump(mode="json", by_alias=True),
    })


if __name__ == "__main__":
    main()
