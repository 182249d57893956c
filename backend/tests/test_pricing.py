from __future__ import annotations

from decimal import Decimal
from itertools import chain, combinations

import pytest

from app.domain import InvalidSelectionError, Outcome, PricingPolicy
from app.settlement.pricing import (
    Quote,
    calculate_stake,
    count_combinations,
    normalize_selection,
    price_ticket,
    validate_selections,
)

ALL_SUBSETS = [
    set(subset)
    for subset in chain.from_iterable(combinations(range(3), size) for size in range(4))
]


def test_single_picks_make_one_combination():
    assert count_combinations([[0], [1]]) == 1


def test_double_pick_doubles_combinations():
    assert count_combinations([[0, 1], [1]]) == 2


def test_full_cover_counts_three_per_event():
    assert count_combinations([[0, 1, 2], [0, 1, 2]]) == 9


def test_strict_policy_rejects_empty_selection():
    assert count_combinations([[0, 1], []]) == 0
    assert count_combinations([[0, 1], []], PricingPolicy.STRICT) == 0


def test_lenient_policy_treats_empty_selection_as_factor_one():
    assert count_combinations([[0, 1], []], PricingPolicy.LENIENT) == 2
    assert count_combinations([[], []], PricingPolicy.LENIENT) == 1


@pytest.mark.parametrize("policy", list(PricingPolicy))
def test_empty_slate_is_unpriceable(policy):
    assert count_combinations([], policy) == 0


@pytest.mark.parametrize("policy", list(PricingPolicy))
def test_adding_an_outcome_never_decreases_combinations(policy):
    for first in ALL_SUBSETS:
        for second in ALL_SUBSETS:
            base = count_combinations([first, second], policy)
            for outcome in set(range(3)) - first:
                assert count_combinations([first | {outcome}, second], policy) >= base
            for outcome in set(range(3)) - second:
                assert count_combinations([first, second | {outcome}], policy) >= base


def test_stake_is_base_times_combinations():
    for first in ALL_SUBSETS[1:]:
        for second in ALL_SUBSETS[1:]:
            selections = [first, second]
            assert calculate_stake(selections, Decimal("0.1")) == Decimal("0.1") * count_combinations(
                selections
            )


def test_price_ticket_returns_quote():
    assert price_ticket([[0, 1], [2]], "0.1") == Quote(combinations=2, stake=Decimal("0.2"))


def test_validate_selections_checks_length():
    with pytest.raises(InvalidSelectionError):
        validate_selections([[0]], event_count=2)


def test_validate_selections_strict_rejects_empty():
    with pytest.raises(InvalidSelectionError, match="#2"):
        validate_selections([[0], []], event_count=2)


def test_validate_selections_lenient_accepts_empty():
    validate_selections([[0], []], event_count=2, policy=PricingPolicy.LENIENT)


def test_validate_selections_rejects_unknown_outcome():
    with pytest.raises(InvalidSelectionError, match="unknown outcomes"):
        validate_selections([[0], [5]], event_count=2)


def test_normalize_selection_builds_outcome_set():
    assert normalize_selection([0, 2, 2]) == frozenset({Outcome.OUTCOME_1, Outcome.OUTCOME_2})
    with pytest.raises(InvalidSelectionError):
        normalize_selection([7])
