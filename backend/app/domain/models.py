"""Typed domain representations shared by the settlement core and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any


class Outcome(IntEnum):
    OUTCOME_1 = 0
    DRAW = 1
    OUTCOME_2 = 2


class DrawStatus(str, Enum):
    SETUP = "setup"
    OPEN = "open"
    CLOSED = "closed"
    SETTLED = "settled"


class PricingPolicy(str, Enum):
    STRICT = "strict"
    LENIENT = "lenient"


Selection = frozenset[Outcome]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Event:
    """Single proposition of a draw slate."""

    index: int
    title: str
    result: Outcome | None = None
    is_void: bool = False
    source_url: str | None = None


@dataclass(slots=True)
class Ticket:
    """A user's bet: one outcome subset per event of the draw."""

    ticket_id: str
    draw_id: int
    user_id: int
    selections: tuple[Selection, ...]
    paid: bool = False
    currency: str = "TON"
    username: str | None = None
    wallet: str | None = None
    invoice_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True, frozen=True)
class UserHits:
    user_id: int
    wallet: str
    hits: int


@dataclass(slots=True, frozen=True)
class SettlementInput:
    """Aggregated input consumed by payout formulas."""

    draw_id: str
    total_bank: Decimal
    max_hits_in_draw: int
    hits_by_user: tuple[UserHits, ...]


@dataclass(slots=True, frozen=True)
class Payout:
    user_id: int
    wallet: str
    hits: int
    amount: Decimal


@dataclass(slots=True)
class SettlementResult:
    """Outcome of one payout formula run, kept verbatim for auditing."""

    formula_name: str
    formula_version: str
    formula_params: dict[str, Any]
    prize_pool: Decimal
    payouts: list[Payout]
    leftover: Decimal
    max_hits_in_draw: int
    rollover_enabled: bool = False
    unclaimed_by_level: dict[int, Decimal] = field(default_factory=dict)

    @property
    def distributed(self) -> Decimal:
        return sum((payout.amount for payout in self.payouts), Decimal("0"))


@dataclass(slots=True)
class DrawSettlement:
    """Settlement record attached to a draw once it is settled."""

    settled_at: datetime
    total_played: int
    best_hits: int
    currency: str
    stake_bank: Decimal
    rollover_in: Decimal
    total_bank: Decimal
    paid_tickets: int
    result: SettlementResult

    @property
    def rollover_amount(self) -> Decimal:
        if not self.result.rollover_enabled:
            return Decimal("0")
        return self.result.leftover


@dataclass(slots=True)
class Draw:
    """Betting round with its slate of events and lifecycle status."""

    draw_id: int
    status: DrawStatus = DrawStatus.SETUP
    events: list[Event] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    rollover_in: Decimal = Decimal("0")
    settlement: DrawSettlement | None = None


@dataclass(slots=True, frozen=True)
class SettlementConfig:
    """Explicit per-run configuration record for the settlement core."""

    formula_name: str
    formula_params: dict[str, Any]
    base_stake_amount: Decimal
    settlement_currency: str
    pricing_policy: PricingPolicy = PricingPolicy.STRICT
    money_decimals: int = 6
