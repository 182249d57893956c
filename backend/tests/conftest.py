from __future__ import annotations

import os
import sys
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.db import init_db
from app.domain import (
    Draw,
    DrawStatus,
    Event,
    Outcome,
    PricingPolicy,
    SettlementConfig,
    Ticket,
)


@pytest.fixture
def settlement_config() -> SettlementConfig:
    return SettlementConfig(
        formula_name="MAX_HITS_EQUAL_SHARE",
        formula_params={"prizePoolPct": 0.9, "rolloverIfNoWinners": True},
        base_stake_amount=Decimal("10"),
        settlement_currency="TON",
        pricing_policy=PricingPolicy.STRICT,
    )


@pytest.fixture
def make_draw():
    def _make_draw(
        results: list[int | None],
        *,
        status: DrawStatus = DrawStatus.CLOSED,
        void: tuple[int, ...] = (),
        draw_id: int = 1,
    ) -> Draw:
        events = [
            Event(
                index=position,
                title=f"Match {position + 1}",
                result=Outcome(result) if result is not None else None,
                is_void=position in void,
            )
            for position, result in enumerate(results)
        ]
        return Draw(draw_id=draw_id, status=status, events=events)

    return _make_draw


@pytest.fixture
def make_ticket():
    counter = {"value": 0}

    def _make_ticket(
        user_id: int,
        selections: list[list[int]],
        *,
        paid: bool = True,
        currency: str = "TON",
        draw_id: int = 1,
        wallet: str | None = None,
    ) -> Ticket:
        counter["value"] += 1
        return Ticket(
            ticket_id=f"{draw_id}_{counter['value']}",
            draw_id=draw_id,
            user_id=user_id,
            selections=tuple(frozenset(Outcome(value) for value in selection) for selection in selections),
            paid=paid,
            currency=currency,
            wallet=wallet,
        )

    return _make_ticket


@pytest.fixture
def session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=True, autocommit=False, future=True)
    yield factory
    engine.dispose()


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        database_url=f"sqlite:///{tmp_path/'totalizator.db'}",
        settlement_currency="TON",
        stake_amounts={"TON": Decimal("10"), "USDT_TON": Decimal("1")},
        events_count=2,
        payout_formula="MAX_HITS_EQUAL_SHARE",
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings
