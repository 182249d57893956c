"""Failure kinds raised by the settlement core before any state is mutated."""

from __future__ import annotations

from collections.abc import Sequence


class SettlementError(Exception):
    """Base class for precondition failures of pricing and settlement."""


class InvalidSelectionError(SettlementError, ValueError):
    """Raised when a ticket's selections do not fit the draw slate."""


class UnknownFormulaError(SettlementError, LookupError):
    """Raised when a payout formula name is not registered."""


class InvalidFormulaParamsError(SettlementError, ValueError):
    """Raised when payout formula parameters are missing or malformed."""


class InvalidDrawStateError(SettlementError):
    """Raised on a lifecycle transition the draw state machine forbids."""


class AlreadySettledError(InvalidDrawStateError):
    """Raised when settlement is attempted on an already settled draw."""


class IncompleteResultsError(SettlementError):
    """Raised when a non-void event has no result at settlement time."""

    def __init__(self, missing: Sequence[int], titles: Sequence[str] | None = None) -> None:
        self.missing = tuple(missing)
        self.titles = tuple(titles or ())
        labels = [
            f"#{index + 1} ({title})" if title else f"#{index + 1}"
            for index, title in zip(self.missing, self.titles or [""] * len(self.missing))
        ]
        super().__init__(
            "Cannot settle: results are missing for events " + ", ".join(labels)
        )


__all__ = [
    "AlreadySettledError",
    "IncompleteResultsError",
    "InvalidDrawStateError",
    "InvalidFormulaParamsError",
    "InvalidSelectionError",
    "SettlementError",
    "UnknownFormulaError",
]
