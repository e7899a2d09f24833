"""Ledger calculations for booking balances.

Pure functions only: callers fetch payment amounts and rates, these
functions derive the numbers. Amounts are whole currency units.
"""

import math
from collections.abc import Iterable
from datetime import datetime, timedelta
from enum import Enum

ONE_DAY = timedelta(days=1)


class PaymentStatus(str, Enum):
    UNPAID = "Unpaid"
    PAID = "Paid"


def total_paid(amounts: Iterable[int | None]) -> int:
    """Sum of recorded payment amounts; missing amounts count as zero."""
    return sum(amount or 0 for amount in amounts)


def remaining_balance(total_amount: int | None, amounts: Iterable[int | None]) -> int:
    """Amount still owed on a booking."""
    return (total_amount or 0) - total_paid(amounts)


def payment_status_for(balance: int) -> PaymentStatus:
    """Paid iff nothing is owed."""
    return PaymentStatus.PAID if balance <= 0 else PaymentStatus.UNPAID


def additional_days(current_end: datetime, new_end: datetime) -> int:
    """Whole days added by moving the end date, rounding partial days up."""
    return math.ceil((new_end - current_end) / ONE_DAY)


def extension_cost(days: int, daily_rate: int | None) -> int:
    return days * (daily_rate or 0)


def rental_cost(start: datetime, end: datetime, daily_rate: int | None) -> int:
    """Rate × days for a rental window, charging at least one day."""
    days = max(1, additional_days(start, end))
    return days * (daily_rate or 0)


def meets_confirmation_threshold(paid: int, threshold: int) -> bool:
    return paid >= threshold
