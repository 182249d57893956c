"""Payout formula strategies exposed to the settlement orchestrator."""

from .base import FORMULA_VERSION, FormulaParams, PayoutFormula
from .equal_share import EqualShareFormula, EqualShareParams
from .fixed_table import FixedTableFormula, FixedTableParams
from .registry import (
    available_formulas,
    calculate_payouts,
    get_formula,
    register_formula,
    resolve_formula,
)
from .tiered_weights import TieredWeightsFormula, TieredWeightsParams

__all__ = [
    "EqualShareFormula",
    "EqualShareParams",
    "FORMULA_VERSION",
    "FixedTableFormula",
    "FixedTableParams",
    "FormulaParams",
    "PayoutFormula",
    "TieredWeightsFormula",
    "TieredWeightsParams",
    "available_formulas",
    "calculate_payouts",
    "get_formula",
    "register_formula",
    "resolve_formula",
]
