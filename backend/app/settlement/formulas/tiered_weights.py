from __future__ import annotations

from decimal import Decimal

from loguru import logger
from pydantic import Field, NonNegativeInt, model_validator

from app.domain import Payout, SettlementInput, SettlementResult

from ..money import MONEY_DECIMALS, from_minor, to_minor
from .base import BaseFormula, FormulaParams, split_among, winners_at


def _default_weights() -> dict[int, int]:
    return {15: 70, 14: 20, 13: 10}


class TieredWeightsParams(FormulaParams):
    prize_pool_pct: Decimal = Field(default=Decimal("0.90"), gt=0, le=1)
    weights: dict[NonNegativeInt, NonNegativeInt] = Field(default_factory=_default_weights)
    min_hits: NonNegativeInt | None = None
    rollover_unclaimed: bool = True

    @model_validator(mode="after")
    def _require_min_hits_source(self) -> "TieredWeightsParams":
        if self.min_hits is None and not self.weights:
            raise ValueError("minHits cannot be derived from an empty weights table")
        return self

    @property
    def effective_min_hits(self) -> int:
        if self.min_hits is not None:
            return self.min_hits
        return min(self.weights)


class TieredWeightsFormula(BaseFormula):
    """Weighted sub-pools per hit level, each split equally among its winners.

    A level's sub-pool is ``floor(pool * weight / total_weight)`` over the
    eligible levels (present in ``weights``, at least ``minHits`` and at most
    the draw's maximum). Sub-pools of levels without winners are not moved to
    other levels; they stay in the leftover together with rounding remainders.
    """

    name = "TIERED_WEIGHTS"
    description = "Weighted prize tiers by hit count."
    params_model = TieredWeightsParams

    def run(
        self,
        data: SettlementInput,
        params: TieredWeightsParams,
        *,
        decimals: int = MONEY_DECIMALS,
    ) -> SettlementResult:
        pool_minor = to_minor(data.total_bank * params.prize_pool_pct, decimals)
        min_hits = params.effective_min_hits
        levels = sorted(
            (
                level
                for level in params.weights
                if min_hits <= level <= data.max_hits_in_draw
            ),
            reverse=True,
        )
        total_weight = sum(params.weights[level] for level in levels)

        payouts: list[Payout] = []
        unclaimed: dict[int, Decimal] = {}
        distributed = 0
        if total_weight <= 0:
            logger.debug(
                "Draw {}: no eligible weighted levels, prize pool kept as leftover",
                data.draw_id,
            )
        else:
            for level in levels:
                sub_pool = pool_minor * params.weights[level] // total_weight
                winners = winners_at(data.hits_by_user, level)
                level_payouts, level_distributed, _ = split_among(
                    sub_pool, winners, level, decimals
                )
                if not winners and sub_pool:
                    unclaimed[level] = from_minor(sub_pool, decimals)
                payouts.extend(level_payouts)
                distributed += level_distributed

        return self._result(
            data,
            params,
            prize_pool=from_minor(pool_minor, decimals),
            payouts=payouts,
            leftover=from_minor(pool_minor - distributed, decimals),
            rollover=params.rollover_unclaimed,
            unclaimed=unclaimed,
        )


__all__ = ["TieredWeightsFormula", "TieredWeightsParams"]
