"""Fixed-point helpers converting currency amounts to integer minor units."""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Union

MONEY_DECIMALS = 6

Amount = Union[Decimal, int, float, str]


def as_decimal(value: Amount) -> Decimal:
    """Return ``value`` as a finite Decimal, routing floats through ``str``."""

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() keeps 0.1 as 0.1 instead of its binary expansion.
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(f"Invalid money amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Money amount must be finite, got {value!r}")
    return result


def to_minor(value: Amount, decimals: int = MONEY_DECIMALS) -> int:
    """Convert ``value`` to integer minor units, flooring sub-unit fractions."""

    amount = as_decimal(value)
    if amount < 0:
        raise ValueError(f"Money amount must not be negative, got {value!r}")
    scaled = amount.scaleb(decimals)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def from_minor(minor: int, decimals: int = MONEY_DECIMALS) -> Decimal:
    quantum = Decimal(1).scaleb(-decimals)
    return Decimal(minor).scaleb(-decimals).quantize(quantum)


def split_equally(pool_minor: int, count: int) -> tuple[int, int]:
    """Return ``(share, remainder)`` for an equal floor split of ``pool_minor``.

    A zero ``count`` keeps the whole pool as remainder instead of dividing.
    """

    if count <= 0:
        return 0, pool_minor
    return divmod(pool_minor, count)


__all__ = ["MONEY_DECIMALS", "as_decimal", "from_minor", "split_equally", "to_minor"]
