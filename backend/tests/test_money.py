from __future__ import annotations

from decimal import Decimal

import pytest

from app.settlement.money import as_decimal, from_minor, split_equally, to_minor


def test_to_minor_floors_sub_unit_fractions():
    assert to_minor(Decimal("12.8571429")) == 12857142
    assert to_minor(Decimal("90")) == 90_000_000


def test_to_minor_routes_floats_through_str():
    # 0.1 * 10**6 in binary floating point is 100000.00000000001
    assert to_minor(0.1) == 100_000
    assert to_minor(100 * 0.9) == 90_000_000


def test_to_minor_honours_custom_precision():
    assert to_minor(Decimal("1.239"), decimals=2) == 123


@pytest.mark.parametrize("value", [-1, "nan", "Infinity", "abc"])
def test_to_minor_rejects_invalid_amounts(value):
    with pytest.raises(ValueError):
        to_minor(value)


def test_from_minor_is_exact():
    assert from_minor(6) == Decimal("0.000006")
    assert from_minor(12_857_142) == Decimal("12.857142")
    assert str(from_minor(30_000_000)) == "30.000000"


def test_split_equally_reports_remainder():
    assert split_equally(90_000_000, 7) == (12_857_142, 6)
    assert split_equally(90_000_000, 3) == (30_000_000, 0)


def test_split_equally_without_recipients_keeps_pool():
    assert split_equally(100, 0) == (0, 100)


def test_as_decimal_passes_decimals_through():
    value = Decimal("1.5")
    assert as_decimal(value) is value
