"""Core domain models used across the volume journal.

These are the canonical "truth models" for the system.  The profile
engine, the gate evaluator and the statement pipeline all exchange these
same types; persistence layers translate to and from them at the edge.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .enums import SkipReason, TradeSide
from .errors import GateInvariantError


# ---------------------------------------------------------------------------
# Volume profile
# ---------------------------------------------------------------------------

class PriceVolumeRow(BaseModel):
    """Traded volume and aggressor delta at one price."""

    price: Decimal
    volume: float = Field(default=0.0, ge=0)
    delta_aggregate: float = 0.0
    timestamp: datetime | None = None  # Only present on intraday rows


class ProfileSummary(BaseModel):
    """Persisted subset of a :class:`Profile` (no levels)."""

    poc: Decimal = Decimal("0")
    val: Decimal = Decimal("0")
    vah: Decimal = Decimal("0")
    total_volume: float = 0.0
    level_count: int = 0


class Profile(BaseModel):
    """Volume profile for one (owner, instrument, day) scope.

    ``levels`` is sorted by ascending price with one entry per grid price.
    A profile with ``total_volume == 0`` means "no data".
    """

    model_config = ConfigDict(frozen=True)

    levels: tuple[PriceVolumeRow, ...] = ()
    poc: Decimal = Decimal("0")
    val: Decimal = Decimal("0")
    vah: Decimal = Decimal("0")
    total_volume: float = 0.0
    level_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.total_volume <= 0

    def summary(self) -> ProfileSummary:
        return ProfileSummary(
            poc=self.poc,
            val=self.val,
            vah=self.vah,
            total_volume=self.total_volume,
            level_count=self.level_count,
        )


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

class Trade(BaseModel):
    """A journaled trade as seen by the analytics core."""

    id: str = ""
    side: TradeSide
    entry_price: Decimal
    instrument: str = ""
    open_timestamp: datetime | None = None
    close_timestamp: datetime | None = None
    external_key: str | None = None
    size: Decimal | None = None
    pnl: Decimal | None = None
    fee: Decimal | None = None
    r_multiple: float | None = None  # Net result in R, set once a stop is known


class EnrichedTrade(Trade):
    """Trade plus its location metrics against the day's profile."""

    volume_at_entry: float = 0.0
    volume_percentile: float = 0.0
    is_hvn: bool = False
    is_lvn: bool = False
    in_value_area: bool = False
    distance_to_poc_ticks: int = 0
    edge_distance_ticks: int = 0
    delta_aggregate: float = 0.0
    delta_rank: float = 0.0
    delta_opposes_side: bool = False
    edge_slope: float = 0.0
    thin_behind: bool = False
    volume_es_equivalent: float = 0.0
    p70_es_volume: float = 0.0  # 70th-percentile level volume, ES-normalized
    poc: Decimal = Decimal("0")
    val: Decimal = Decimal("0")
    vah: Decimal = Decimal("0")

    # Filled in by the gate evaluator
    level_score: int = 0
    gate_pass: bool = False
    flags: list[str] = Field(default_factory=list)


class GateResult(BaseModel):
    """Outcome of a Fade/Breakout gate evaluation."""

    model_config = ConfigDict(frozen=True)

    passed: bool = Field(serialization_alias="pass")
    score: int = Field(ge=0, le=10)
    flags: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _flags_follow_pass(self) -> GateResult:
        if self.passed and not self.flags:
            raise GateInvariantError("gate passed with an empty flag sequence")
        if not self.passed and self.flags:
            raise GateInvariantError("failed gate carries flags")
        return self


# ---------------------------------------------------------------------------
# Statement import
# ---------------------------------------------------------------------------

class ImportRow(BaseModel):
    """One broker statement row after header resolution and parsing.

    Unparseable numbers and dates are ``None``; the raw date strings are
    kept for diagnostics.
    """

    symbol: str = ""
    side: str = ""
    size: Decimal | None = None
    pnl: Decimal | None = None
    fee: Decimal | None = None
    open_price: Decimal | None = None
    close_price: Decimal | None = None
    open_date: datetime | None = None
    close_date: datetime | None = None
    open_date_raw: str = ""
    close_date_raw: str = ""
    open_order_id: str = ""
    close_order_id: str = ""
    pips: Decimal | None = None
    drawdown: Decimal | None = None
    drawdown_cash: Decimal | None = None
    line_number: int | None = None


class AggregatedImportRow(ImportRow):
    """Round-trip trade assembled from all rows sharing an open order id."""

    group_key: str
    leg_count: int = 1


class ImportOptions(BaseModel):
    """Caller-owned configuration for one import run."""

    owner_id: str
    instrument: str = "ES"
    tick_size: Decimal = Decimal("0.25")
    tick_value: Decimal = Decimal("12.5")
    dry_run: bool = False
    update_mode: bool = False
    source: str = "volfix"
    sample_limit: int = 3
    bad_date_sample_limit: int = 10

    @field_validator("instrument")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def price_per_point(self) -> Decimal | None:
        if not self.tick_size or not self.tick_value:
            return None
        return self.tick_value / self.tick_size


class ImportDebug(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    bad_close_date_samples: list[str] = Field(default_factory=list)
    hint: str = ""


class ImportSummary(BaseModel):
    """Counters and previews produced by one import run."""

    ok: bool = True
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    reasons: dict[str, int] = Field(
        default_factory=lambda: {r.value: 0 for r in SkipReason}
    )
    sample: list[dict[str, Any]] = Field(default_factory=list)
    debug: ImportDebug | None = None
    error: str | None = None

    def skip(self, reason: SkipReason) -> None:
        self.reasons[reason.value] += 1
        self.skipped += 1

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StoredTrade(BaseModel):
    """Identity fields of a persisted trade, as returned by dedup lookups."""

    id: str
    external_key: str | None = None
    open_order_id: str = ""
    close_order_id: str = ""


class VolumeDay(BaseModel):
    """Persisted price/volume rows for one (owner, instrument, day)."""

    owner_id: str
    instrument: str
    day: str  # YYYY-MM-DD
    tick_size: Decimal = Decimal("0.25")
    source: str = "volfix"
    rows: list[PriceVolumeRow] = Field(default_factory=list)
    profile: ProfileSummary = Field(default_factory=ProfileSummary)
    updated_at: datetime | None = None
