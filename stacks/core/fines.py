#!/usr/bin/env python

"""
    Overdue fine arithmetic for Stacks.

    A loan returned after its due date is charged `daily_rate` for every
    started day past due, capped at `cap`. Partial days round up, so a
    copy returned one minute late is one day late.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import math
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal("0.01")
SECONDS_PER_DAY = 24 * 60 * 60


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)

def days_overdue(due_date: datetime, at: datetime) -> int:
    """Whole days (rounded up) between `due_date` and `at`, 0 if not late."""
    if at <= due_date:
        return 0
    return math.ceil((at - due_date).total_seconds() / SECONDS_PER_DAY)

def compute_fine(due_date: datetime, return_date: datetime, daily_rate, cap) -> Decimal:
    days = days_overdue(due_date, return_date)
    if not days:
        return to_money(0)
    return min(to_money(days * to_money(daily_rate)), to_money(cap))
