from __future__ import annotations

from decimal import Decimal

from loguru import logger
from pydantic import Field

from app.domain import SettlementInput, SettlementResult

from ..money import MONEY_DECIMALS, from_minor, to_minor
from .base import BaseFormula, FormulaParams, split_among, winners_at


class EqualShareParams(FormulaParams):
    prize_pool_pct: Decimal = Field(default=Decimal("0.90"), gt=0, le=1)
    rollover_if_no_winners: bool = True


class EqualShareFormula(BaseFormula):
    """Split the prize pool equally among users with the maximum hit count."""

    name = "MAX_HITS_EQUAL_SHARE"
    description = "Equal share of the prize pool for every user at max hits."
    params_model = EqualShareParams

    def run(
        self,
        data: SettlementInput,
        params: EqualShareParams,
        *,
        decimals: int = MONEY_DECIMALS,
    ) -> SettlementResult:
        pool_minor = to_minor(data.total_bank * params.prize_pool_pct, decimals)
        winners = winners_at(data.hits_by_user, data.max_hits_in_draw)
        payouts, distributed, _ = split_among(
            pool_minor, winners, data.max_hits_in_draw, decimals
        )
        unclaimed = {}
        if not winners:
            unclaimed[data.max_hits_in_draw] = from_minor(pool_minor, decimals)
            logger.debug(
                "Draw {}: no users at {} hits, prize pool kept as leftover",
                data.draw_id,
                data.max_hits_in_draw,
            )

        return self._result(
            data,
            params,
            prize_pool=from_minor(pool_minor, decimals),
            payouts=payouts,
            leftover=from_minor(pool_minor - distributed, decimals),
            rollover=params.rollover_if_no_winners,
            unclaimed=unclaimed,
        )


__all__ = ["EqualShareFormula", "EqualShareParams"]
