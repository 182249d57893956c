"""In-progress ticket selections, one betting session per user."""

from __future__ import annotations

from dataclasses import dataclass, field

from app.domain import (
    Draw,
    DrawStatus,
    InvalidDrawStateError,
    InvalidSelectionError,
    Outcome,
    PricingPolicy,
    SettlementConfig,
    Ticket,
)
from app.settlement.pricing import Quote, price_ticket, validate_selections


@dataclass(slots=True)
class BettingSession:
    user_id: int
    draw_id: int
    selections: list[set[Outcome]] = field(default_factory=list)

    def frozen_selections(self) -> tuple[frozenset[Outcome], ...]:
        return tuple(frozenset(selection) for selection in self.selections)


class SessionStore:
    """Own the betting sessions of all users.

    Quotes use the configured pricing policy so half-filled tickets can be
    shown to the user; finalizing always validates strictly.
    """

    def __init__(self, config: SettlementConfig) -> None:
        self.config = config
        self._sessions: dict[int, BettingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, user_id: int) -> BettingSession | None:
        return self._sessions.get(user_id)

    def start(self, user_id: int, draw: Draw) -> BettingSession:
        if DrawStatus(draw.status) is not DrawStatus.OPEN:
            raise InvalidDrawStateError(f"Draw {draw.draw_id} is not accepting bets")
        session = BettingSession(
            user_id=user_id,
            draw_id=draw.draw_id,
            selections=[set() for _ in draw.events],
        )
        self._sessions[user_id] = session
        return session

    def toggle_outcome(self, user_id: int, event_index: int, outcome: Outcome | int) -> BettingSession:
        session = self._require(user_id)
        if not 0 <= event_index < len(session.selections):
            raise InvalidSelectionError(f"No event #{event_index + 1} in draw {session.draw_id}")
        try:
            value = Outcome(outcome)
        except ValueError as exc:
            raise InvalidSelectionError(f"Unknown outcome {outcome!r}") from exc
        selection = session.selections[event_index]
        if value in selection:
            selection.remove(value)
        else:
            selection.add(value)
        return session

    def quote(self, user_id: int) -> Quote:
        session = self._require(user_id)
        return price_ticket(
            session.selections, self.config.base_stake_amount, self.config.pricing_policy
        )

    def finalize(
        self,
        user_id: int,
        draw: Draw,
        ticket_id: str,
        *,
        username: str | None = None,
        wallet: str | None = None,
        invoice_id: str | None = None,
    ) -> Ticket:
        """Turn the user's session into an unpaid ticket and drop the session."""

        session = self._require(user_id)
        if session.draw_id != draw.draw_id or DrawStatus(draw.status) is not DrawStatus.OPEN:
            raise InvalidDrawStateError(f"Draw {draw.draw_id} is not accepting bets")
        validate_selections(session.selections, len(draw.events), PricingPolicy.STRICT)
        ticket = Ticket(
            ticket_id=ticket_id,
            draw_id=draw.draw_id,
            user_id=user_id,
            selections=session.frozen_selections(),
            paid=False,
            currency=self.config.settlement_currency.upper(),
            username=username,
            wallet=wallet,
            invoice_id=invoice_id,
        )
        del self._sessions[user_id]
        return ticket

    def discard(self, user_id: int) -> None:
        self._sessions.pop(user_id, None)

    def _require(self, user_id: int) -> BettingSession:
        try:
            return self._sessions[user_id]
        except KeyError as exc:
            raise LookupError(f"No betting session for user {user_id}") from exc


__all__ = ["BettingSession", "SessionStore"]
