"""Validated snapshots exchanged with the ticket/draw store.

Everything read from storage passes through :func:`parse_draw_snapshot`, so
the settlement core only ever sees well-formed ``Draw`` and ``Ticket`` objects.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.domain import (
    Draw,
    DrawSettlement,
    DrawStatus,
    Event,
    Outcome,
    Payout,
    SettlementResult,
    Ticket,
)
from app.domain.models import utcnow
from app.settlement.pricing import normalize_selection


class EventSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    index: int = Field(ge=0)
    title: str = ""
    result: Outcome | None = None
    is_void: bool = False
    source_url: str | None = None

    @model_validator(mode="after")
    def _void_clears_result(self) -> "EventSnapshot":
        if self.is_void:
            self.result = None
        return self

    def to_domain(self) -> Event:
        return Event(
            index=self.index,
            title=self.title,
            result=self.result,
            is_void=self.is_void,
            source_url=self.source_url,
        )


class TicketSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket_id: str
    draw_id: int
    user_id: int
    selections: list[list[Outcome]] = Field(default_factory=list)
    paid: bool = False
    currency: str = "TON"
    username: str | None = None
    wallet: str | None = None
    invoice_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("selections", mode="before")
    @classmethod
    def _coerce_selections(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [[] if item is None else item for item in value]
        return value

    @field_validator("selections", mode="after")
    @classmethod
    def _unique_outcomes(cls, value: list[list[Outcome]]) -> list[list[Outcome]]:
        for position, selection in enumerate(value):
            if len(set(selection)) != len(selection):
                raise ValueError(f"selection #{position + 1} repeats an outcome")
        return value

    @field_validator("currency", mode="after")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    def to_domain(self) -> Ticket:
        return Ticket(
            ticket_id=self.ticket_id,
            draw_id=self.draw_id,
            user_id=self.user_id,
            selections=tuple(normalize_selection(selection) for selection in self.selections),
            paid=self.paid,
            currency=self.currency,
            username=self.username,
            wallet=self.wallet,
            invoice_id=self.invoice_id,
            created_at=self.created_at,
        )


class PayoutSnapshot(BaseModel):
    user_id: int
    wallet: str = ""
    hits: int = Field(ge=0)
    amount: Decimal = Field(ge=0)


class SettlementResultSnapshot(BaseModel):
    formula_name: str
    formula_version: str
    formula_params: dict[str, Any] = Field(default_factory=dict)
    prize_pool: Decimal
    payouts: list[PayoutSnapshot] = Field(default_factory=list)
    leftover: Decimal = Field(ge=0)
    max_hits_in_draw: int = Field(ge=0)
    rollover_enabled: bool = False
    unclaimed_by_level: dict[int, Decimal] = Field(default_factory=dict)

    def to_domain(self) -> SettlementResult:
        return SettlementResult(
            formula_name=self.formula_name,
            formula_version=self.formula_version,
            formula_params=dict(self.formula_params),
            prize_pool=self.prize_pool,
            payouts=[
                Payout(
                    user_id=payout.user_id,
                    wallet=payout.wallet,
                    hits=payout.hits,
                    amount=payout.amount,
                )
                for payout in self.payouts
            ],
            leftover=self.leftover,
            max_hits_in_draw=self.max_hits_in_draw,
            rollover_enabled=self.rollover_enabled,
            unclaimed_by_level=dict(self.unclaimed_by_level),
        )


class DrawSettlementSnapshot(BaseModel):
    settled_at: datetime
    total_played: int = Field(ge=0)
    best_hits: int = Field(ge=0)
    currency: str
    stake_bank: Decimal
    rollover_in: Decimal = Decimal("0")
    total_bank: Decimal
    paid_tickets: int = Field(ge=0)
    result: SettlementResultSnapshot

    def to_domain(self) -> DrawSettlement:
        return DrawSettlement(
            settled_at=self.settled_at,
            total_played=self.total_played,
            best_hits=self.best_hits,
            currency=self.currency,
            stake_bank=self.stake_bank,
            rollover_in=self.rollover_in,
            total_bank=self.total_bank,
            paid_tickets=self.paid_tickets,
            result=self.result.to_domain(),
        )


class DrawSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    draw_id: int = Field(ge=1)
    status: DrawStatus = DrawStatus.SETUP
    created_at: datetime = Field(default_factory=utcnow)
    rollover_in: Decimal = Field(default=Decimal("0"), ge=0)
    events: list[EventSnapshot] = Field(default_factory=list)
    settlement: DrawSettlementSnapshot | None = None
    tickets: list[TicketSnapshot] = Field(default_factory=list)

    @field_validator("events", "tickets", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("events", mode="after")
    @classmethod
    def _order_events(cls, value: list[EventSnapshot]) -> list[EventSnapshot]:
        ordered = sorted(value, key=lambda event: event.index)
        if [event.index for event in ordered] != list(range(len(ordered))):
            raise ValueError("event indexes must be unique and contiguous from 0")
        return ordered

    @model_validator(mode="after")
    def _check_consistency(self) -> "DrawSnapshot":
        if self.status is DrawStatus.SETTLED and self.settlement is None:
            raise ValueError("settled draw is missing its settlement record")
        if self.status is not DrawStatus.SETTLED and self.settlement is not None:
            raise ValueError("only settled draws may carry a settlement record")
        for ticket in self.tickets:
            if ticket.draw_id != self.draw_id:
                raise ValueError(
                    f"ticket {ticket.ticket_id} belongs to draw {ticket.draw_id}, not {self.draw_id}"
                )
        return self

    def to_domain(self) -> tuple[Draw, list[Ticket]]:
        draw = Draw(
            draw_id=self.draw_id,
            status=self.status,
            events=[event.to_domain() for event in self.events],
            created_at=self.created_at,
            rollover_in=self.rollover_in,
            settlement=self.settlement.to_domain() if self.settlement else None,
        )
        return draw, [ticket.to_domain() for ticket in self.tickets]


def parse_draw_snapshot(raw: Mapping[str, Any]) -> tuple[Draw, list[Ticket]]:
    """Validate a raw store payload and return domain objects."""

    return DrawSnapshot.model_validate(dict(raw)).to_domain()


def dump_settlement(settlement: DrawSettlement) -> dict[str, Any]:
    """Serialize a settlement record into a JSON-compatible mapping."""

    snapshot = DrawSettlementSnapshot(
        settled_at=settlement.settled_at,
        total_played=settlement.total_played,
        best_hits=settlement.best_hits,
        currency=settlement.currency,
        stake_bank=settlement.stake_bank,
        rollover_in=settlement.rollover_in,
        total_bank=settlement.total_bank,
        paid_tickets=settlement.paid_tickets,
        result=SettlementResultSnapshot(
            formula_name=settlement.result.formula_name,
            formula_version=settlement.result.formula_version,
            formula_params=dict(settlement.result.formula_params),
            prize_pool=settlement.result.prize_pool,
            payouts=[
                PayoutSnapshot(
                    user_id=payout.user_id,
                    wallet=payout.wallet,
                    hits=payout.hits,
                    amount=payout.amount,
                )
                for payout in settlement.result.payouts
            ],
            leftover=settlement.result.leftover,
            max_hits_in_draw=settlement.result.max_hits_in_draw,
            rollover_enabled=settlement.result.rollover_enabled,
            unclaimed_by_level=dict(settlement.result.unclaimed_by_level),
        ),
    )
    return snapshot.model_dump(mode="json")


__all__ = [
    "DrawSettlementSnapshot",
    "DrawSnapshot",
    "EventSnapshot",
    "PayoutSnapshot",
    "SettlementResultSnapshot",
    "TicketSnapshot",
    "dump_settlement",
    "parse_draw_snapshot",
]
