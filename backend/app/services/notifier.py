"""Winner notification contract consumed after a draw is settled."""

from __future__ import annotations

from typing import Protocol, Sequence

from loguru import logger

from app.domain import Payout


class Notifier(Protocol):
    def notify_winners(self, draw_id: int, payouts: Sequence[Payout], currency: str) -> None:
        """Deliver prize messages; delivery channel is up to the implementation."""


class LoggingNotifier:
    """Notifier that only records payouts in the log."""

    def notify_winners(self, draw_id: int, payouts: Sequence[Payout], currency: str) -> None:
        if not payouts:
            logger.info("Draw {} settled without winners", draw_id)
            return
        for payout in payouts:
            logger.info(
                "Draw {} winner {}: {} hits, prize {} {}",
                draw_id,
                payout.user_id,
                payout.hits,
                payout.amount,
                currency,
            )


__all__ = ["LoggingNotifier", "Notifier"]
