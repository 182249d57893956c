"""Contracts shared by the payout formula strategies."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, ClassVar, Protocol

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from app.domain import (
    InvalidFormulaParamsError,
    Payout,
    SettlementInput,
    SettlementResult,
    UserHits,
)

from ..money import MONEY_DECIMALS, from_minor, split_equally

FORMULA_VERSION = "1.0.0"


class FormulaParams(BaseModel):
    """Base for formula parameter models.

    Stored configuration uses camelCase keys (``prizePoolPct``); snake_case is
    accepted as well.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    def audit_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PayoutFormula(Protocol):
    """Interface implemented by prize distribution strategies."""

    name: str
    version: str
    description: str | None
    params_model: ClassVar[type[FormulaParams]]

    def parse_params(self, raw: Mapping[str, Any] | FormulaParams | None) -> FormulaParams:
        """Validate raw parameters or raise :class:`InvalidFormulaParamsError`."""

    def run(
        self,
        data: SettlementInput,
        params: FormulaParams,
        *,
        decimals: int = MONEY_DECIMALS,
    ) -> SettlementResult:
        """Distribute the prize pool among winners. Must be pure."""


class BaseFormula:
    """Shared parameter handling and split helpers for formula strategies."""

    name: str = "formula"
    version: str = FORMULA_VERSION
    description: str | None = None
    params_model: ClassVar[type[FormulaParams]] = FormulaParams

    def parse_params(self, raw: Mapping[str, Any] | FormulaParams | None) -> FormulaParams:
        if isinstance(raw, self.params_model):
            return raw
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise InvalidFormulaParamsError(
                f"{self.name} params must be a mapping, got {type(raw).__name__}"
            )
        try:
            return self.params_model.model_validate(dict(raw))
        except ValidationError as exc:
            raise InvalidFormulaParamsError(f"Invalid {self.name} params: {exc}") from exc

    def _result(
        self,
        data: SettlementInput,
        params: FormulaParams,
        *,
        prize_pool: Decimal,
        payouts: list[Payout],
        leftover: Decimal,
        rollover: bool,
        unclaimed: Mapping[int, Decimal] | None = None,
    ) -> SettlementResult:
        return SettlementResult(
            formula_name=self.name,
            formula_version=self.version,
            formula_params=params.audit_dict(),
            prize_pool=prize_pool,
            payouts=payouts,
            leftover=leftover,
            max_hits_in_draw=data.max_hits_in_draw,
            rollover_enabled=rollover,
            unclaimed_by_level=dict(unclaimed or {}),
        )


def winners_at(hits_by_user: Iterable[UserHits], level: int) -> list[UserHits]:
    """Return users with exactly ``level`` hits, ordered by user id."""

    return sorted(
        (entry for entry in hits_by_user if entry.hits == level),
        key=lambda entry: entry.user_id,
    )


def split_among(
    pool_minor: int,
    winners: list[UserHits],
    level: int,
    decimals: int,
) -> tuple[list[Payout], int, int]:
    """Split ``pool_minor`` equally; return ``(payouts, distributed, remainder)``."""

    share, remainder = split_equally(pool_minor, len(winners))
    if not winners or share == 0:
        return [], 0, pool_minor
    amount = from_minor(share, decimals)
    payouts = [
        Payout(user_id=winner.user_id, wallet=winner.wallet, hits=level, amount=amount)
        for winner in winners
    ]
    return payouts, share * len(winners), remainder


__all__ = [
    "BaseFormula",
    "FORMULA_VERSION",
    "FormulaParams",
    "PayoutFormula",
    "split_among",
    "winners_at",
]
