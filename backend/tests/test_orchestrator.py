from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.domain import (
    AlreadySettledError,
    DrawStatus,
    IncompleteResultsError,
    InvalidDrawStateError,
    InvalidSelectionError,
    UnknownFormulaError,
)
from app.settlement import SettlementOrchestrator, missing_results


@pytest.fixture
def tickets(make_ticket):
    return [
        make_ticket(1, [[0], [1]]),
        make_ticket(2, [[0, 1], [1]]),
        make_ticket(3, [[2], [1]]),
        make_ticket(3, [[0], [1]], currency="USDT_TON"),
        make_ticket(4, [[0], [1]], paid=False),
    ]


def test_settle_closed_draw(settlement_config, make_draw, tickets):
    draw = make_draw([0, 1])
    settled_at = datetime(2024, 5, 1, 12, tzinfo=timezone.utc)

    settlement = SettlementOrchestrator(settlement_config).settle(
        draw, tickets, settled_at=settled_at
    )

    assert draw.status is DrawStatus.SETTLED
    assert draw.settlement is settlement
    assert settlement.settled_at == settled_at
    assert settlement.total_played == 2
    assert settlement.best_hits == 2
    assert settlement.paid_tickets == 4
    assert settlement.stake_bank == Decimal("40")
    assert settlement.total_bank == Decimal("40")
    assert settlement.currency == "TON"

    result = settlement.result
    assert result.prize_pool == Decimal("36")
    assert [(payout.user_id, payout.amount) for payout in result.payouts] == [
        (1, Decimal("12")),
        (2, Decimal("12")),
        (3, Decimal("12")),
    ]
    assert result.leftover == Decimal("0")


def test_settle_twice_is_rejected(settlement_config, make_draw, tickets):
    draw = make_draw([0, 1])
    orchestrator = SettlementOrchestrator(settlement_config)
    first = orchestrator.settle(draw, tickets)

    with pytest.raises(AlreadySettledError):
        orchestrator.settle(draw, tickets)

    assert draw.settlement is first
    assert draw.status is DrawStatus.SETTLED


@pytest.mark.parametrize("status", [DrawStatus.SETUP, DrawStatus.OPEN])
def test_settle_requires_closed_draw(settlement_config, make_draw, tickets, status):
    draw = make_draw([0, 1], status=status)

    with pytest.raises(InvalidDrawStateError):
        SettlementOrchestrator(settlement_config).settle(draw, tickets)

    assert draw.status is status
    assert draw.settlement is None


def test_settle_reports_missing_results(settlement_config, make_draw, tickets):
    draw = make_draw([0, None])

    with pytest.raises(IncompleteResultsError) as excinfo:
        SettlementOrchestrator(settlement_config).settle(draw, tickets)

    assert excinfo.value.missing == (1,)
    assert "#2 (Match 2)" in str(excinfo.value)
    assert draw.status is DrawStatus.CLOSED
    assert draw.settlement is None


def test_void_event_without_result_is_not_missing(settlement_config, make_draw, tickets):
    draw = make_draw([0, None], void=(1,))
    assert missing_results(draw) == []

    settlement = SettlementOrchestrator(settlement_config).settle(draw, tickets)

    assert settlement.total_played == 1
    # User 3 scores through the USDT_TON ticket even though it adds nothing to the bank.
    assert [payout.user_id for payout in settlement.result.payouts] == [1, 2, 3]
    assert settlement.result.payouts[0].hits == 1


def test_invalid_paid_selection_aborts_settlement(settlement_config, make_draw, make_ticket):
    draw = make_draw([0, 1])
    broken = [make_ticket(1, [[0], [1]]), make_ticket(2, [[0], []])]

    with pytest.raises(InvalidSelectionError):
        SettlementOrchestrator(settlement_config).settle(draw, broken)

    assert draw.status is DrawStatus.CLOSED
    assert draw.settlement is None


def test_unpaid_invalid_ticket_is_ignored(settlement_config, make_draw, make_ticket):
    draw = make_draw([0, 1])
    tickets = [make_ticket(1, [[0], [1]]), make_ticket(2, [[0]], paid=False)]

    settlement = SettlementOrchestrator(settlement_config).settle(draw, tickets)

    assert settlement.paid_tickets == 1


def test_unknown_formula_aborts_settlement(settlement_config, make_draw, tickets):
    draw = make_draw([0, 1])
    config = replace(settlement_config, formula_name="JACKPOT")

    with pytest.raises(UnknownFormulaError):
        SettlementOrchestrator(config).settle(draw, tickets)

    assert draw.status is DrawStatus.CLOSED


def test_rollover_joins_the_bank(settlement_config, make_draw, tickets):
    draw = make_draw([0, 1])
    draw.rollover_in = Decimal("5")

    settlement = SettlementOrchestrator(settlement_config).prepare(draw, tickets)

    assert settlement.stake_bank == Decimal("40")
    assert settlement.rollover_in == Decimal("5")
    assert settlement.total_bank == Decimal("45")
    assert settlement.result.prize_pool == Decimal("40.5")


def test_no_winners_rolls_pool_over(settlement_config, make_draw, make_ticket):
    draw = make_draw([0, 1])
    tickets = [make_ticket(1, [[1], [0]])]

    settlement = SettlementOrchestrator(settlement_config).settle(draw, tickets)

    assert settlement.best_hits == 0
    assert settlement.result.payouts == []
    assert settlement.result.leftover == Decimal("9")
    assert settlement.rollover_amount == Decimal("9")


def test_prepare_leaves_draw_untouched(settlement_config, make_draw, tickets):
    draw = make_draw([0, 1])

    settlement = SettlementOrchestrator(settlement_config).prepare(draw, tickets)

    assert settlement.result.payouts
    assert draw.status is DrawStatus.CLOSED
    assert draw.settlement is None


def test_tickets_from_other_draws_are_ignored(settlement_config, make_draw, make_ticket):
    draw = make_draw([0, 1])
    tickets = [make_ticket(1, [[0], [1]]), make_ticket(2, [[0], [1]], draw_id=2)]

    settlement = SettlementOrchestrator(settlement_config).settle(draw, tickets)

    assert settlement.paid_tickets == 1
    assert [payout.user_id for payout in settlement.result.payouts] == [1]


def test_wallet_mapping_overrides_ticket_wallet(settlement_config, make_draw, make_ticket):
    draw = make_draw([0, 1])
    tickets = [make_ticket(1, [[0], [1]], wallet="EQ-old")]

    settlement = SettlementOrchestrator(settlement_config).settle(
        draw, tickets, wallets={1: "EQ-new"}
    )

    assert settlement.result.payouts[0].wallet == "EQ-new"


def test_tiered_formula_through_orchestrator(settlement_config, make_draw, make_ticket):
    config = replace(
        settlement_config,
        formula_name="TIERED_WEIGHTS",
        formula_params={"prizePoolPct": 1, "weights": {2: 3, 1: 1}},
    )
    draw = make_draw([0, 1])
    tickets = [make_ticket(1, [[0], [1]]), make_ticket(2, [[0], [0]])]

    settlement = SettlementOrchestrator(config).settle(draw, tickets)

    assert [(payout.user_id, payout.amount) for payout in settlement.result.payouts] == [
        (1, Decimal("15")),
        (2, Decimal("5")),
    ]
    assert settlement.result.formula_name == "TIERED_WEIGHTS"


def test_unordered_slate_scores_by_event_index(settlement_config, make_draw, tickets):
    draw = make_draw([0, 1])
    draw.events.reverse()

    settlement = SettlementOrchestrator(settlement_config).settle(draw, tickets)

    assert settlement.best_hits == 2
    assert [payout.user_id for payout in settlement.result.payouts] == [1, 2, 3]


def test_missing_results_report_event_indexes(make_draw):
    draw = make_draw([None, 1, None])
    draw.events.reverse()

    assert missing_results(draw) == [0, 2]
