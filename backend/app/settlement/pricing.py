"""Combination pricing for ticket selections."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from app.domain import InvalidSelectionError, Outcome, PricingPolicy

from .money import Amount, as_decimal

MAX_OUTCOMES_PER_EVENT = len(Outcome)


@dataclass(slots=True, frozen=True)
class Quote:
    combinations: int
    stake: Decimal


def count_combinations(
    selections: Sequence[Iterable[int]],
    policy: PricingPolicy = PricingPolicy.STRICT,
) -> int:
    """Return the number of outcome combinations covered by ``selections``.

    Under the strict policy an empty selection makes the ticket unpriceable (0).
    The lenient policy treats it as a factor of 1 for half-filled tickets.
    """

    if not selections:
        return 0
    product = 1
    for selection in selections:
        size = len(set(selection)) if selection else 0
        if size == 0:
            if policy is PricingPolicy.STRICT:
                return 0
            continue
        product *= size
    return product


def calculate_stake(
    selections: Sequence[Iterable[int]],
    base_stake: Amount,
    policy: PricingPolicy = PricingPolicy.STRICT,
) -> Decimal:
    return count_combinations(selections, policy) * as_decimal(base_stake)


def price_ticket(
    selections: Sequence[Iterable[int]],
    base_stake: Amount,
    policy: PricingPolicy = PricingPolicy.STRICT,
) -> Quote:
    combinations = count_combinations(selections, policy)
    return Quote(combinations=combinations, stake=combinations * as_decimal(base_stake))


def validate_selections(
    selections: Sequence[Iterable[int]],
    event_count: int,
    policy: PricingPolicy = PricingPolicy.STRICT,
) -> None:
    """Raise :class:`InvalidSelectionError` when selections do not fit the slate."""

    if len(selections) != event_count:
        raise InvalidSelectionError(
            f"Expected {event_count} selections, got {len(selections)}"
        )
    valid_values = {outcome.value for outcome in Outcome}
    for index, selection in enumerate(selections):
        values = set(selection or ())
        unknown = values - valid_values
        if unknown:
            raise InvalidSelectionError(
                f"Selection for event #{index + 1} has unknown outcomes: {sorted(unknown)}"
            )
        if len(values) > MAX_OUTCOMES_PER_EVENT:
            raise InvalidSelectionError(
                f"Selection for event #{index + 1} has more than {MAX_OUTCOMES_PER_EVENT} outcomes"
            )
        if not values and policy is PricingPolicy.STRICT:
            raise InvalidSelectionError(f"Selection for event #{index + 1} is empty")


def normalize_selection(values: Iterable[int]) -> frozenset[Outcome]:
    """Coerce raw outcome values into a selection, rejecting unknown values."""

    raw = list(values)
    try:
        return frozenset(Outcome(int(value)) for value in raw)
    except (TypeError, ValueError) as exc:
        raise InvalidSelectionError(f"Invalid outcome values: {raw!r}") from exc


__all__ = [
    "MAX_OUTCOMES_PER_EVENT",
    "Quote",
    "calculate_stake",
    "count_combinations",
    "normalize_selection",
    "price_ticket",
    "validate_selections",
]
