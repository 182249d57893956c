from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.domain import PricingPolicy, SettlementConfig


def _default_payout_params() -> dict[str, dict[str, Any]]:
    return {
        "MAX_HITS_EQUAL_SHARE": {"prizePoolPct": 0.90, "rolloverIfNoWinners": True},
        "TIERED_WEIGHTS": {
            "prizePoolPct": 0.90,
            "weights": {"15": 70, "14": 20, "13": 10},
            "minHits": 13,
            "rolloverUnclaimed": True,
        },
        "FIXED_TABLE": {
            "fixed": {"15": 10000, "14": 1500, "13": 250},
            "rolloverUnclaimed": True,
        },
    }


def load_payout_config(path: str | Path) -> tuple[str | None, dict[str, Any] | None]:
    """Read ``formula`` and ``params`` from a YAML payout config file.

    Expected structure::

        formula: TIERED_WEIGHTS
        params:
          prizePoolPct: 0.85
          weights: {15: 60, 14: 25, 13: 15}
          minHits: 13
    """

    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise FileNotFoundError(f"Payout config file not found: {file_path}")

    raw = yaml.safe_load(file_path.read_text())
    if raw is None:
        return None, None
    if not isinstance(raw, Mapping):
        raise ValueError(f"Payout config {file_path} must be a mapping")

    formula = raw.get("formula")
    if formula is not None and not isinstance(formula, str):
        raise ValueError(f"'formula' in {file_path} must be a string")
    params = raw.get("params")
    if params is not None and not isinstance(params, Mapping):
        raise ValueError(f"'params' in {file_path} must be a mapping")
    return formula, dict(params) if params is not None else None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Echo SQL statements")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    database_url: AnyUrl | str = Field(
        default="sqlite:///./data/totalizator.db",
        description="SQLAlchemy compatible database URL for the ticket/draw store",
    )
    settlement_currency: str = Field(
        default="TON",
        description="Currency whose paid tickets form the settlement bank (TON|USDT_TON)",
    )
    stake_amounts: dict[str, Decimal] = Field(
        default_factory=lambda: {"TON": Decimal("0.1"), "USDT_TON": Decimal("0.1")},
        description="Stake per combination keyed by currency",
    )
    events_count: int = Field(
        default=15,
        description="Number of events a draw must have before it can open",
        ge=1,
    )
    pricing_policy: PricingPolicy = Field(
        default=PricingPolicy.STRICT,
        description="How empty selections are priced (strict|lenient)",
    )
    payout_formula: str = Field(
        default="MAX_HITS_EQUAL_SHARE",
        description="Payout formula used when settling draws",
    )
    payout_params: dict[str, dict[str, Any]] = Field(
        default_factory=_default_payout_params,
        description="Per-formula parameters keyed by formula name",
    )
    payout_config_path: str | None = Field(
        default=None,
        description="Optional YAML file overriding payout formula and params",
    )
    money_decimals: int = Field(
        default=6,
        description="Decimal places of the minor unit used for payout arithmetic",
        ge=0,
        le=18,
    )

    @field_validator("settlement_currency", "payout_formula")
    @classmethod
    def _upper(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not normalized:
            raise ValueError("value must not be empty")
        return normalized

    @field_validator("stake_amounts", mode="after")
    @classmethod
    def _normalize_stakes(cls, value: dict[str, Decimal]) -> dict[str, Decimal]:
        normalized: dict[str, Decimal] = {}
        for currency, amount in value.items():
            if amount <= 0:
                raise ValueError(f"STAKE_AMOUNTS entry for {currency} must be positive")
            normalized[currency.strip().upper()] = amount
        return normalized

    @field_validator("payout_params", mode="after")
    @classmethod
    def _normalize_param_keys(cls, value: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
        return {name.strip().upper(): params for name, params in value.items()}

    @property
    def base_stake_amount(self) -> Decimal:
        try:
            return self.stake_amounts[self.settlement_currency]
        except KeyError as exc:
            raise ValueError(
                f"No stake amount configured for currency {self.settlement_currency}"
            ) from exc

    def resolved_payout(self) -> tuple[str, dict[str, Any]]:
        formula = self.payout_formula
        params = dict(self.payout_params.get(formula, {}))
        if self.payout_config_path:
            file_formula, file_params = load_payout_config(self.payout_config_path)
            if file_formula:
                formula = file_formula.strip().upper()
                params = dict(self.payout_params.get(formula, {}))
            if file_params is not None:
                params = file_params
        return formula, params

    def settlement_config(self) -> SettlementConfig:
        formula, params = self.resolved_payout()
        return SettlementConfig(
            formula_name=formula,
            formula_params=params,
            base_stake_amount=self.base_stake_amount,
            settlement_currency=self.settlement_currency,
            pricing_policy=self.pricing_policy,
            money_decimals=self.money_decimals,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
