"""
Round-up engine.

A debit of 42.30 rounds up to 43.00; the 0.70 difference is
diverted to the customer's linked savings account. Pure: the
caller decides whether and where to apply the result.
"""

from decimal import Decimal, ROUND_CEILING


def compute_round_up(amount: Decimal) -> Decimal:
    """
    Return the distance from amount to the next whole currency unit.

    Zero when amount is already whole.
    """
    if amount <= 0:
        raise ValueError("round-up is only defined for positive debit amounts")
    return amount.to_integral_value(rounding=ROUND_CEILING) - amount
