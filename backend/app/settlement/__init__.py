"""Settlement core: pricing, hit counting, payout formulas and orchestration."""

from .formulas import available_formulas, calculate_payouts, get_formula
from .hits import aggregate_best_hits, count_hits, is_scored, max_possible_hits
from .lifecycle import ensure_transition
from .money import MONEY_DECIMALS, from_minor, to_minor
from .orchestrator import SettlementOrchestrator, missing_results
from .pricing import Quote, calculate_stake, count_combinations, price_ticket, validate_selections

__all__ = [
    "MONEY_DECIMALS",
    "Quote",
    "SettlementOrchestrator",
    "aggregate_best_hits",
    "available_formulas",
    "calculate_payouts",
    "calculate_stake",
    "count_combinations",
    "count_hits",
    "ensure_transition",
    "from_minor",
    "get_formula",
    "is_scored",
    "max_possible_hits",
    "missing_results",
    "price_ticket",
    "to_minor",
    "validate_selections",
]
