"""Standalone job that settles a closed draw and notifies its winners."""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import uuid4

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings, get_settings
from app.db import init_db, session_scope
from app.domain import DrawSettlement
from app.repositories import DrawNotFoundError, DrawRepository
from app.services.notifier import LoggingNotifier, Notifier
from app.settlement import SettlementOrchestrator


@dataclass(slots=True)
class SettlementSummary:
    run_id: str
    draw_id: int
    dry_run: bool
    formula_name: str = ""
    formula_version: str = ""
    currency: str = ""
    paid_tickets: int = 0
    total_played: int = 0
    best_hits: int = 0
    total_bank: Decimal = Decimal("0")
    prize_pool: Decimal = Decimal("0")
    leftover: Decimal = Decimal("0")
    rollover_amount: Decimal = Decimal("0")
    winners: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_settlement(
        cls, run_id: str, draw_id: int, settlement: DrawSettlement, *, dry_run: bool
    ) -> "SettlementSummary":
        result = settlement.result
        return cls(
            run_id=run_id,
            draw_id=draw_id,
            dry_run=dry_run,
            formula_name=result.formula_name,
            formula_version=result.formula_version,
            currency=settlement.currency,
            paid_tickets=settlement.paid_tickets,
            total_played=settlement.total_played,
            best_hits=settlement.best_hits,
            total_bank=settlement.total_bank,
            prize_pool=result.prize_pool,
            leftover=result.leftover,
            rollover_amount=settlement.rollover_amount,
            winners=[
                {
                    "user_id": payout.user_id,
                    "wallet": payout.wallet,
                    "hits": payout.hits,
                    "amount": str(payout.amount),
                }
                for payout in result.payouts
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "draw_id": self.draw_id,
            "dry_run": self.dry_run,
            "formula_name": self.formula_name,
            "formula_version": self.formula_version,
            "currency": self.currency,
            "paid_tickets": self.paid_tickets,
            "total_played": self.total_played,
            "best_hits": self.best_hits,
            "total_bank": str(self.total_bank),
            "prize_pool": str(self.prize_pool),
            "leftover": str(self.leftover),
            "rollover_amount": str(self.rollover_amount),
            "winners": self.winners,
        }


class SettlementPipeline:
    """Load a draw snapshot, settle it and persist the result atomically."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session_factory: sessionmaker[Session] | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self._notifier = notifier or LoggingNotifier()

    def run(self, *, draw_id: int | None = None, dry_run: bool = False) -> SettlementSummary:
        config = self.settings.settlement_config()
        orchestrator = SettlementOrchestrator(config)
        run_id = str(uuid4())

        with session_scope(self._session_factory) as session:
            repo = DrawRepository(session)
            if draw_id is None:
                latest = repo.latest_draw()
                if latest is None:
                    raise DrawNotFoundError("No draws in the store")
                draw_id = latest.draw_id

            draw, tickets = repo.load_snapshot(draw_id)
            logger.info(
                "Settling draw {} ({} tickets, formula={}, currency={}, dry_run={})",
                draw_id,
                len(tickets),
                config.formula_name,
                config.settlement_currency,
                dry_run,
            )
            if dry_run:
                settlement = orchestrator.prepare(draw, tickets)
            else:
                settlement = orchestrator.settle(draw, tickets)
                repo.save_settlement(draw)

        summary = SettlementSummary.from_settlement(run_id, draw_id, settlement, dry_run=dry_run)
        if not dry_run:
            # Only after the commit succeeded.
            self._notifier.notify_winners(draw_id, settlement.result.payouts, settlement.currency)
        logger.info(
            "Settlement run {} finished: draw={}, winners={}, leftover={} {}",
            run_id,
            draw_id,
            len(summary.winners),
            summary.leftover,
            summary.currency,
        )
        return summary


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Settle a closed draw and distribute prizes")
    parser.add_argument(
        "--draw-id",
        type=int,
        default=None,
        help="Draw to settle (defaults to the most recent draw)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute payouts without persisting the settlement or notifying winners",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional path where a JSON summary report will be written",
    )
    return parser.parse_args()


def _write_summary(summary: SettlementSummary, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.to_dict(), default=str, indent=2))
    logger.info("Settlement summary written to {}", path)


def main() -> SettlementSummary:
    args = _parse_args()
    settings = get_settings()
    init_db()
    summary = SettlementPipeline(settings).run(draw_id=args.draw_id, dry_run=args.dry_run)
    if args.summary_path:
        _write_summary(summary, args.summary_path)
    return summary


if __name__ == "__main__":
    main()
