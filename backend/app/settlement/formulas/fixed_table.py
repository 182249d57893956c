from __future__ import annotations

from decimal import Decimal

from loguru import logger
from pydantic import Field, NonNegativeInt, field_validator

from app.domain import Payout, SettlementInput, SettlementResult

from ..money import MONEY_DECIMALS, as_decimal, from_minor, to_minor
from .base import BaseFormula, FormulaParams, split_among, winners_at


def _default_table() -> dict[int, Decimal]:
    return {15: Decimal("10000"), 14: Decimal("1500"), 13: Decimal("250")}


class FixedTableParams(FormulaParams):
    fixed: dict[NonNegativeInt, Decimal] = Field(default_factory=_default_table)
    rollover_unclaimed: bool = True

    @field_validator("fixed", mode="after")
    @classmethod
    def _positive_prizes(cls, value: dict[int, Decimal]) -> dict[int, Decimal]:
        for level, prize in value.items():
            if not prize.is_finite() or prize <= 0:
                raise ValueError(f"fixed prize for {level} hits must be positive")
        return value


class FixedTableFormula(BaseFormula):
    """Flat prize per hit level, split equally among that level's winners.

    The reported prize pool is the whole bank. Payouts never exceed it:
    levels are funded from the highest hit count down, and a level the
    remaining bank cannot cover receives only what is left.
    """

    name = "FIXED_TABLE"
    description = "Fixed prize table by hit count, capped at the bank."
    params_model = FixedTableParams

    def run(
        self,
        data: SettlementInput,
        params: FixedTableParams,
        *,
        decimals: int = MONEY_DECIMALS,
    ) -> SettlementResult:
        bank_minor = to_minor(data.total_bank, decimals)
        levels = sorted(
            (level for level in params.fixed if level <= data.max_hits_in_draw),
            reverse=True,
        )

        payouts: list[Payout] = []
        unclaimed: dict[int, Decimal] = {}
        available = bank_minor
        for level in levels:
            prize_minor = to_minor(as_decimal(params.fixed[level]), decimals)
            winners = winners_at(data.hits_by_user, level)
            if not winners:
                unclaimed[level] = from_minor(prize_minor, decimals)
                continue
            funded = min(prize_minor, available)
            if funded < prize_minor:
                logger.warning(
                    "Draw {}: fixed prize for {} hits capped at {} (table amount {})",
                    data.draw_id,
                    level,
                    from_minor(funded, decimals),
                    from_minor(prize_minor, decimals),
                )
            level_payouts, level_distributed, _ = split_among(
                funded, winners, level, decimals
            )
            payouts.extend(level_payouts)
            available -= level_distributed

        return self._result(
            data,
            params,
            prize_pool=from_minor(bank_minor, decimals),
            payouts=payouts,
            leftover=from_minor(available, decimals),
            rollover=params.rollover_unclaimed,
            unclaimed=unclaimed,
        )


__all__ = ["FixedTableFormula", "FixedTableParams"]
