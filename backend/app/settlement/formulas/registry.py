"""Runtime registry for payout formulas."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from app.domain import SettlementInput, SettlementResult, UnknownFormulaError

from ..money import MONEY_DECIMALS
from .base import FormulaParams, PayoutFormula

_FORMULAS: Dict[str, PayoutFormula] = {}


def register_formula(formula: PayoutFormula) -> None:
    """Register or replace a payout formula."""

    _FORMULAS[formula.name.upper()] = formula


def get_formula(name: str) -> PayoutFormula:
    """Return the formula registered under ``name``."""

    if not isinstance(name, str) or not name.strip():
        raise UnknownFormulaError(f"Payout formula name must be a non-empty string, got {name!r}")
    try:
        return _FORMULAS[name.strip().upper()]
    except KeyError as exc:
        raise UnknownFormulaError(
            f"Payout formula '{name}' is not registered "
            f"(available: {', '.join(available_formulas())})"
        ) from exc


def available_formulas() -> tuple[str, ...]:
    return tuple(sorted(_FORMULAS))


def resolve_formula(
    name: str, params: Mapping[str, Any] | FormulaParams | None
) -> tuple[PayoutFormula, FormulaParams]:
    """Look up ``name`` and validate ``params`` without running anything."""

    formula = get_formula(name)
    return formula, formula.parse_params(params)


def calculate_payouts(
    name: str,
    data: SettlementInput,
    params: Mapping[str, Any] | FormulaParams | None,
    *,
    decimals: int = MONEY_DECIMALS,
) -> SettlementResult:
    formula, parsed = resolve_formula(name, params)
    return formula.run(data, parsed, decimals=decimals)


# Register built-in formulas at import time.
from .equal_share import EqualShareFormula  # noqa: E402
from .fixed_table import FixedTableFormula  # noqa: E402
from .tiered_weights import TieredWeightsFormula  # noqa: E402

register_formula(EqualShareFormula())
register_formula(TieredWeightsFormula())
register_formula(FixedTableFormula())


__all__ = [
    "available_formulas",
    "calculate_payouts",
    "get_formula",
    "register_formula",
    "resolve_formula",
]
