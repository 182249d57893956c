"""Domain models and error kinds for the totalizator settlement engine."""

from .errors import (
    AlreadySettledError,
    IncompleteResultsError,
    InvalidDrawStateError,
    InvalidFormulaParamsError,
    InvalidSelectionError,
    SettlementError,
    UnknownFormulaError,
)
from .models import (
    Draw,
    DrawSettlement,
    DrawStatus,
    Event,
    Outcome,
    Payout,
    PricingPolicy,
    Selection,
    SettlementConfig,
    SettlementInput,
    SettlementResult,
    Ticket,
    UserHits,
)

__all__ = [
    "AlreadySettledError",
    "Draw",
    "DrawSettlement",
    "DrawStatus",
    "Event",
    "IncompleteResultsError",
    "InvalidDrawStateError",
    "InvalidFormulaParamsError",
    "InvalidSelectionError",
    "Outcome",
    "Payout",
    "PricingPolicy",
    "Selection",
    "SettlementConfig",
    "SettlementError",
    "SettlementInput",
    "SettlementResult",
    "Ticket",
    "UnknownFormulaError",
    "UserHits",
]
