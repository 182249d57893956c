from __future__ import annotations

from decimal import Decimal

import pytest

from app.core.config import Settings, load_payout_config
from app.domain import PricingPolicy


def test_defaults_build_equal_share_config():
    settings = Settings(_env_file=None)

    config = settings.settlement_config()

    assert config.formula_name == "MAX_HITS_EQUAL_SHARE"
    assert config.formula_params == {"prizePoolPct": 0.90, "rolloverIfNoWinners": True}
    assert config.base_stake_amount == Decimal("0.1")
    assert config.settlement_currency == "TON"
    assert config.pricing_policy is PricingPolicy.STRICT


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SETTLEMENT_CURRENCY", "usdt_ton")
    monkeypatch.setenv("PAYOUT_FORMULA", "tiered_weights")
    monkeypatch.setenv("PRICING_POLICY", "lenient")
    monkeypatch.setenv(
        "PAYOUT_PARAMS", '{"tiered_weights": {"prizePoolPct": 0.8, "weights": {"2": 1}}}'
    )

    config = Settings(_env_file=None).settlement_config()

    assert config.settlement_currency == "USDT_TON"
    assert config.formula_name == "TIERED_WEIGHTS"
    assert config.formula_params == {"prizePoolPct": 0.8, "weights": {"2": 1}}
    assert config.pricing_policy is PricingPolicy.LENIENT


def test_yaml_file_overrides_formula_and_params(tmp_path):
    path = tmp_path / "payouts.yaml"
    path.write_text(
        "formula: fixed_table\n"
        "params:\n"
        "  fixed: {15: 500}\n"
        "  rolloverUnclaimed: false\n"
    )

    settings = Settings(_env_file=None, payout_config_path=str(path))
    formula, params = settings.resolved_payout()

    assert formula == "FIXED_TABLE"
    assert params == {"fixed": {15: 500}, "rolloverUnclaimed": False}


def test_yaml_formula_without_params_uses_configured_params(tmp_path):
    path = tmp_path / "payouts.yaml"
    path.write_text("formula: FIXED_TABLE\n")

    _, params = Settings(_env_file=None, payout_config_path=str(path)).resolved_payout()

    assert params["fixed"] == {"15": 10000, "14": 1500, "13": 250}


def test_load_payout_config_validates_shape(tmp_path):
    missing = tmp_path / "missing.yaml"
    with pytest.raises(FileNotFoundError):
        load_payout_config(missing)

    wrong = tmp_path / "wrong.yaml"
    wrong.write_text("- formula\n")
    with pytest.raises(ValueError):
        load_payout_config(wrong)

    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert load_payout_config(empty) == (None, None)


def test_missing_stake_for_currency_is_reported():
    settings = Settings(
        _env_file=None, settlement_currency="USDT_TON", stake_amounts={"TON": "0.1"}
    )

    with pytest.raises(ValueError, match="USDT_TON"):
        settings.settlement_config()


def test_non_positive_stake_is_rejected():
    with pytest.raises(ValueError):
        Settings(_env_file=None, stake_amounts={"TON": "0"})
