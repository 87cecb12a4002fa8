#!/usr/bin/env python

"""
    Patron Directory boundary for Stacks.

    Patrons live outside the engine; circulation only ever asks for their
    borrowing standing. Any object with a `get_eligibility(patron_id)`
    method returning an `Eligibility` can serve as the directory.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from typing import Protocol
from stacks.core.models import CirculationRecord
from stacks.schemas.patron import Eligibility


class PatronDirectory(Protocol):

    def get_eligibility(self, patron_id: str) -> Eligibility:
        ...


class LedgerPatronDirectory:
    """Derives eligibility from the loans recorded in this engine, with the
    policy loan limit shared by every patron.
    """

    def __init__(self, db, policy, clock):
        self.db = db
        self.policy = policy
        self.clock = clock

    def get_eligibility(self, patron_id: str) -> Eligibility:
        loans = CirculationRecord.open_by_patron(self.db, patron_id)
        now = self.clock()
        return Eligibility(
            active_loan_count=len(loans),
            has_overdue_loan=any(loan.is_overdue(now) for loan in loans),
            max_concurrent_loans=self.policy.loan_limit
        )
