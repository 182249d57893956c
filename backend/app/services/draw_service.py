"""Draw lifecycle operations performed by administrators before settlement."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from loguru import logger

from app.core.config import Settings
from app.domain import (
    Draw,
    DrawStatus,
    Event,
    InvalidDrawStateError,
    Outcome,
    SettlementConfig,
    Ticket,
)
from app.settlement import ensure_transition
from app.settlement.formulas import resolve_formula
from app.settlement.pricing import calculate_stake

_EDITABLE_SLATE = {DrawStatus.SETUP, DrawStatus.OPEN}
_RESOLVABLE = {DrawStatus.OPEN, DrawStatus.CLOSED}


@dataclass(slots=True)
class DrawStatistics:
    draw_id: int
    status: DrawStatus
    events: int
    total_tickets: int
    paid_tickets: int
    unpaid_tickets: int
    unique_users: int
    paid_bank: Decimal
    currency: str

    def to_dict(self) -> dict[str, object]:
        return {
            "draw_id": self.draw_id,
            "status": self.status.value,
            "events": self.events,
            "total_tickets": self.total_tickets,
            "paid_tickets": self.paid_tickets,
            "unpaid_tickets": self.unpaid_tickets,
            "unique_users": self.unique_users,
            "paid_bank": str(self.paid_bank),
            "currency": self.currency,
        }


class DrawService:
    """Drive a draw through setup, open and closed.

    The closed -> settled step belongs to
    :class:`app.settlement.SettlementOrchestrator`.
    """

    def __init__(self, config: SettlementConfig, *, events_count: int = 15) -> None:
        self.config = config
        self.events_count = events_count

    @classmethod
    def from_settings(cls, settings: Settings) -> "DrawService":
        return cls(settings.settlement_config(), events_count=settings.events_count)

    # ------------------------------------------------------------------
    # Draw creation

    def new_draw(self, draw_id: int = 1, *, rollover_in: Decimal = Decimal("0")) -> Draw:
        return Draw(draw_id=draw_id, rollover_in=rollover_in)

    def start_next_draw(self, previous: Draw) -> Draw:
        """Create the draw that follows a settled one, carrying its rollover."""

        if previous.status is not DrawStatus.SETTLED or previous.settlement is None:
            raise InvalidDrawStateError(
                f"A new draw can only follow a settled one (draw {previous.draw_id} "
                f"is '{DrawStatus(previous.status).value}')"
            )
        rollover = previous.settlement.rollover_amount
        draw = self.new_draw(previous.draw_id + 1, rollover_in=rollover)
        logger.info(
            "Created draw {} after draw {} (rollover {} {})",
            draw.draw_id,
            previous.draw_id,
            rollover,
            previous.settlement.currency,
        )
        return draw

    # ------------------------------------------------------------------
    # Slate editing

    def add_event(self, draw: Draw, title: str, *, source_url: str | None = None) -> Event:
        self._require_status(draw, {DrawStatus.SETUP}, "add events")
        if len(draw.events) >= self.events_count:
            raise InvalidDrawStateError(
                f"Draw {draw.draw_id} already has {self.events_count} events"
            )
        event = Event(index=len(draw.events), title=title.strip(), source_url=source_url)
        draw.events.append(event)
        return event

    def set_event_title(self, draw: Draw, index: int, title: str) -> Event:
        self._require_status(draw, _EDITABLE_SLATE, "rename events")
        event = self._event(draw, index)
        event.title = title.strip()
        return event

    def set_event_source(self, draw: Draw, index: int, source_url: str | None) -> Event:
        self._require_status(draw, _EDITABLE_SLATE, "change event sources")
        event = self._event(draw, index)
        event.source_url = source_url or None
        return event

    def set_result(self, draw: Draw, index: int, result: Outcome | int | None) -> Event:
        """Record (or clear with ``None``) an event result; this also un-voids it."""

        self._require_status(draw, _RESOLVABLE, "set results")
        event = self._event(draw, index)
        event.result = Outcome(result) if result is not None else None
        event.is_void = False
        return event

    def toggle_void(self, draw: Draw, index: int) -> Event:
        self._require_status(draw, _RESOLVABLE, "void events")
        event = self._event(draw, index)
        event.is_void = not event.is_void
        if event.is_void:
            event.result = None
        logger.info(
            "Draw {} event #{} {}",
            draw.draw_id,
            index + 1,
            "voided" if event.is_void else "restored",
        )
        return event

    # ------------------------------------------------------------------
    # Transitions

    def open_draw(self, draw: Draw) -> Draw:
        ensure_transition(draw.status, DrawStatus.OPEN)
        if len(draw.events) != self.events_count:
            raise InvalidDrawStateError(
                f"Draw {draw.draw_id} needs {self.events_count} events to open, has {len(draw.events)}"
            )
        # Misconfigured payouts must block the round before any ticket is sold.
        resolve_formula(self.config.formula_name, self.config.formula_params)
        draw.status = DrawStatus.OPEN
        logger.info("Draw {} opened with formula {}", draw.draw_id, self.config.formula_name)
        return draw

    def close_draw(self, draw: Draw) -> Draw:
        ensure_transition(draw.status, DrawStatus.CLOSED)
        draw.status = DrawStatus.CLOSED
        logger.info("Draw {} closed for betting", draw.draw_id)
        return draw

    # ------------------------------------------------------------------
    # Reporting

    def statistics(self, draw: Draw, tickets: Iterable[Ticket]) -> DrawStatistics:
        own = [ticket for ticket in tickets if ticket.draw_id == draw.draw_id]
        paid = [ticket for ticket in own if ticket.paid]
        currency = self.config.settlement_currency.upper()
        bank = sum(
            (
                calculate_stake(ticket.selections, self.config.base_stake_amount)
                for ticket in paid
                if ticket.currency.upper() == currency
            ),
            Decimal("0"),
        )
        return DrawStatistics(
            draw_id=draw.draw_id,
            status=DrawStatus(draw.status),
            events=len(draw.events),
            total_tickets=len(own),
            paid_tickets=len(paid),
            unpaid_tickets=len(own) - len(paid),
            unique_users=len({ticket.user_id for ticket in own}),
            paid_bank=bank,
            currency=currency,
        )

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _require_status(draw: Draw, allowed: set[DrawStatus], action: str) -> None:
        status = DrawStatus(draw.status)
        if status not in allowed:
            raise InvalidDrawStateError(
                f"Cannot {action} while draw {draw.draw_id} is '{status.value}'"
            )

    @staticmethod
    def _event(draw: Draw, index: int) -> Event:
        if not 0 <= index < len(draw.events):
            raise IndexError(f"Draw {draw.draw_id} has no event #{index + 1}")
        return draw.events[index]


__all__ = ["DrawService", "DrawStatistics"]
