"""Close-the-draw operation: hit counting, bank aggregation and payout formula."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from decimal import Decimal

from loguru import logger

from app.domain import (
    Draw,
    DrawSettlement,
    DrawStatus,
    IncompleteResultsError,
    PricingPolicy,
    SettlementConfig,
    SettlementInput,
    Ticket,
)
from app.domain.models import utcnow

from .formulas import resolve_formula
from .hits import aggregate_best_hits, max_possible_hits
from .lifecycle import ensure_transition
from .pricing import calculate_stake, validate_selections


def missing_results(draw: Draw) -> list[int]:
    """Return indexes of non-void events that still lack a result."""

    return sorted(
        event.index
        for event in draw.events
        if not event.is_void and event.result is None
    )


class SettlementOrchestrator:
    """Settle closed draws with the configured payout formula.

    All checks run before the draw is touched; a failed check leaves the draw
    exactly as it was. Callers must serialize settlement of the same draw
    (the store does this with a status compare-and-swap).
    """

    def __init__(self, config: SettlementConfig) -> None:
        self.config = config

    def _paid_tickets(self, draw: Draw, tickets: Iterable[Ticket]) -> list[Ticket]:
        paid: list[Ticket] = []
        foreign = 0
        for ticket in tickets:
            if ticket.draw_id != draw.draw_id:
                foreign += 1
                continue
            if ticket.paid:
                paid.append(ticket)
        if foreign:
            logger.warning(
                "Ignoring {} tickets that belong to other draws while settling draw {}",
                foreign,
                draw.draw_id,
            )
        return paid

    def _check_preconditions(self, draw: Draw, paid: Sequence[Ticket]) -> None:
        ensure_transition(draw.status, DrawStatus.SETTLED)

        missing = missing_results(draw)
        if missing:
            titles = {event.index: event.title for event in draw.events}
            raise IncompleteResultsError(missing, [titles[index] for index in missing])

        for ticket in paid:
            # Settlement is always strict: half-filled tickets never pay out.
            validate_selections(ticket.selections, len(draw.events), PricingPolicy.STRICT)

    def stake_bank(self, paid: Iterable[Ticket]) -> Decimal:
        currency = self.config.settlement_currency.upper()
        bank = Decimal("0")
        for ticket in paid:
            if ticket.currency.upper() != currency:
                continue
            bank += calculate_stake(
                ticket.selections, self.config.base_stake_amount, PricingPolicy.STRICT
            )
        return bank

    def prepare(
        self,
        draw: Draw,
        tickets: Iterable[Ticket],
        *,
        wallets: Mapping[int, str] | None = None,
        settled_at: datetime | None = None,
    ) -> DrawSettlement:
        """Compute the settlement record without changing ``draw``."""

        paid = self._paid_tickets(draw, tickets)
        self._check_preconditions(draw, paid)
        formula, params = resolve_formula(
            self.config.formula_name, self.config.formula_params
        )

        total_played = max_possible_hits(draw.events)
        hits_by_user = aggregate_best_hits(paid, draw.events, wallets)
        stake_bank = self.stake_bank(paid)
        total_bank = stake_bank + draw.rollover_in

        data = SettlementInput(
            draw_id=str(draw.draw_id),
            total_bank=total_bank,
            max_hits_in_draw=total_played,
            hits_by_user=tuple(hits_by_user),
        )
        result = formula.run(data, params, decimals=self.config.money_decimals)
        best_hits = max((entry.hits for entry in hits_by_user), default=0)

        return DrawSettlement(
            settled_at=settled_at or utcnow(),
            total_played=total_played,
            best_hits=best_hits,
            currency=self.config.settlement_currency.upper(),
            stake_bank=stake_bank,
            rollover_in=draw.rollover_in,
            total_bank=total_bank,
            paid_tickets=len(paid),
            result=result,
        )

    def settle(
        self,
        draw: Draw,
        tickets: Iterable[Ticket],
        *,
        wallets: Mapping[int, str] | None = None,
        settled_at: datetime | None = None,
    ) -> DrawSettlement:
        settlement = self.prepare(draw, tickets, wallets=wallets, settled_at=settled_at)
        draw.settlement = settlement
        draw.status = DrawStatus.SETTLED
        logger.info(
            "Settled draw {}: formula={}, played={}, bank={} {}, winners={}, leftover={}",
            draw.draw_id,
            settlement.result.formula_name,
            settlement.total_played,
            settlement.total_bank,
            settlement.currency,
            len(settlement.result.payouts),
            settlement.result.leftover,
        )
        return settlement


__all__ = ["SettlementOrchestrator", "missing_results"]
