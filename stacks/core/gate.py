#!/usr/bin/env python

"""
    Availability Gate for Stacks.

    A composite eligibility check run before any loan or reservation is
    created. It answers with a `Decision` carrying an enumerated reason
    rather than a plain boolean, so callers can tell "no copies" apart
    from "over the loan limit".

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import enum
from typing import NamedTuple
from stacks.core.models import CirculationRecord, Reservation, ItemStatus
from stacks.core.exceptions import Conflict, PolicyViolation


class Reason(enum.Enum):
    OK = "OK"
    NO_COPIES_AVAILABLE = "NO_COPIES_AVAILABLE"
    ITEM_INACTIVE = "ITEM_INACTIVE"
    DUPLICATE_LOAN = "DUPLICATE_LOAN"
    DUPLICATE_RESERVATION = "DUPLICATE_RESERVATION"
    LOAN_LIMIT_EXCEEDED = "LOAN_LIMIT_EXCEEDED"
    HAS_OVERDUE_LOAN = "HAS_OVERDUE_LOAN"

ERRORS = {
    Reason.NO_COPIES_AVAILABLE: Conflict,
    Reason.ITEM_INACTIVE: Conflict,
    Reason.DUPLICATE_LOAN: Conflict,
    Reason.DUPLICATE_RESERVATION: Conflict,
    Reason.LOAN_LIMIT_EXCEEDED: PolicyViolation,
    Reason.HAS_OVERDUE_LOAN: PolicyViolation,
}


class Decision(NamedTuple):
    reason: Reason

    @property
    def allowed(self) -> bool:
        return self.reason == Reason.OK

    def raise_for_reason(self, detail=""):
        if not self.allowed:
            message = self.reason.value.replace("_", " ").capitalize()
            raise ERRORS[self.reason](f"{message}{detail}.", reason=self.reason.value)

OK = Decision(Reason.OK)


class AvailabilityGate:

    def __init__(self, db, patrons):
        self.db = db
        self.patrons = patrons

    def check_patron(self, patron_id) -> Decision:
        eligibility = self.patrons.get_eligibility(patron_id)
        if eligibility.has_overdue_loan:
            return Decision(Reason.HAS_OVERDUE_LOAN)
        if eligibility.at_loan_limit:
            return Decision(Reason.LOAN_LIMIT_EXCEEDED)
        return OK

    def check_issue(self, item, patron_id) -> Decision:
        if item.status != ItemStatus.ACTIVE:
            return Decision(Reason.ITEM_INACTIVE)
        if CirculationRecord.open_for(self.db, item.id, patron_id):
            return Decision(Reason.DUPLICATE_LOAN)
        if not (decision := self.check_patron(patron_id)).allowed:
            return decision
        if item.available_copies <= 0:
            return Decision(Reason.NO_COPIES_AVAILABLE)
        return OK

    def check_reserve(self, item, patron_id) -> Decision:
        if item.status != ItemStatus.ACTIVE:
            return Decision(Reason.ITEM_INACTIVE)
        if Reservation.active_for(self.db, item.id, patron_id):
            return Decision(Reason.DUPLICATE_RESERVATION)
        if CirculationRecord.open_for(self.db, item.id, patron_id):
            return Decision(Reason.DUPLICATE_LOAN)
        return self.check_patron(patron_id)
