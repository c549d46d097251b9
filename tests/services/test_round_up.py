"""
Tests for the round-up calculation.
"""

from decimal import Decimal

import pytest

from cayden_core.services.round_up import compute_round_up


@pytest.mark.parametrize("amount, expected", [
    ("42.30", "0.70"),
    ("50.00", "0.00"),
    ("0.01", "0.99"),
    ("3.99", "0.01"),
    ("12.3456", "0.6544"),
])
def test_round_up_to_next_whole_unit(amount, expected):
    assert compute_round_up(Decimal(amount)) == Decimal(expected)


def test_round_up_stays_decimal():
    result = compute_round_up(Decimal("42.30"))
    assert isinstance(result, Decimal)


def test_non_positive_amount_rejected():
    with pytest.raises(ValueError):
        compute_round_up(Decimal("0"))
    with pytest.raises(ValueError):
        compute_round_up(Decimal("-1.50"))
