#!/usr/bin/env python

"""
    Circulation Ledger for Stacks,
    issuing, extending and returning loans against the item registry.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from datetime import timedelta
from stacks.core.models import (
    CirculationRecord,
    Reservation,
    LoanStatus,
    Condition
)
from stacks.core.registry import TransactionKind
from stacks.core.fines import compute_fine, days_overdue, to_money
from stacks.core.notifications import OVERDUE
from stacks.core.utils import require_datetime, require_patron_id, require_period, coerce_enum
from stacks.core.exceptions import (
    Conflict,
    NotFound,
    PolicyViolation,
    InvalidTransition,
    ValidationError
)
from stacks.schemas.notification import Notification

logger = logging.getLogger(__name__)

# How each reported condition closes a loan and where the copy goes
RETURNS = {
    Condition.GOOD: (LoanStatus.RETURNED, TransactionKind.RETURN),
    Condition.LOST: (LoanStatus.LOST, TransactionKind.LOSS),
    Condition.DAMAGED: (LoanStatus.DAMAGED, TransactionKind.DAMAGE),
}


class Ledger:

    def __init__(self, db, registry, gate, queue, policy, clock):
        self.db = db
        self.registry = registry
        self.gate = gate
        self.queue = queue
        self.policy = policy
        self.clock = clock

    def get(self, record_id) -> CirculationRecord:
        if record := CirculationRecord.get(self.db, record_id):
            return record
        raise NotFound(f"Loan {record_id} does not exist.", reason="LOAN_NOT_FOUND")

    def issue(self, item_id, patron_id, loan_period_days=None) -> CirculationRecord:
        """
        Lend one copy of an item to a patron.

        Args:
            item_id: CatalogItem to lend from.
            patron_id: Borrowing patron.
            loan_period_days: Days until due; the policy default if omitted.

        Returns:
            The new ISSUED CirculationRecord.

        Raises:
            ValidationError: If the patron id or loan period is malformed.
            NotFound: If the item is missing or retired.
            Conflict: If no copy is available or the patron already has one.
            PolicyViolation: If the patron is over the loan limit or overdue.
        """
        patron_id = require_patron_id(patron_id)
        loan_period_days = require_period(loan_period_days, self.policy.loan_period_days, "Loan period")

        item = self.registry._writable(item_id)
        self.gate.check_issue(item, patron_id).raise_for_reason(f" for item {item_id}")

        # A patron collecting their own hold completes it.
        if reservation := Reservation.active_for(self.db, item_id, patron_id):
            loan = self.queue.complete(reservation, loan_period_days)
            logger.info(f"Issued item {item_id} to {patron_id} against reservation {reservation.id}")
            return loan

        now = self.clock()
        self.registry.apply(item_id, TransactionKind.ISSUE)
        loan = CirculationRecord(
            item_id=item_id,
            patron_id=patron_id,
            issue_date=now,
            due_date=now + timedelta(days=loan_period_days),
            status=LoanStatus.ISSUED,
            fine_amount=0,
            fine_paid=False,
            renewal_count=0
        )
        self.db.add(loan)
        self.db.flush()
        logger.info(f"Issued item {item_id} to {patron_id} as loan {loan.id}")
        return loan

    def extend(self, record_id, new_due_date) -> CirculationRecord:
        new_due_date = require_datetime(new_due_date, "New due date")
        record = self.get(record_id)
        if not record.is_open:
            raise InvalidTransition(
                f"Loan {record_id} is {record.status.value} and cannot be extended."
            )
        if new_due_date <= record.due_date:
            raise ValidationError(
                f"New due date {new_due_date:%Y-%m-%d %H:%M} must be after {record.due_date:%Y-%m-%d %H:%M}.",
                reason="DUE_DATE_NOT_LATER"
            )
        if record.renewal_count >= self.policy.max_renewals:
            raise PolicyViolation(
                f"Loan {record_id} was already extended {record.renewal_count} time(s).",
                reason="RENEWAL_LIMIT_REACHED"
            )
        if self.policy.block_extend_on_holds and Reservation.active_by_item(self.db, record.item_id):
            raise Conflict(
                f"Item {record.item_id} is reserved by another patron.", reason="HOLDS_PENDING"
            )

        record.transition(LoanStatus.EXTENDED)
        record.due_date = new_due_date
        record.extended_date = self.clock()
        record.renewal_count += 1
        self.db.flush()
        logger.info(f"Extended loan {record_id} to {new_due_date:%Y-%m-%d}")
        return record

    def return_item(self, record_id, reported_condition=Condition.GOOD) -> CirculationRecord:
        record = self.get(record_id)
        try:
            condition = Condition(reported_condition)
        except ValueError:
            raise ValidationError(
                f"Unknown condition {reported_condition!r}.", reason="INVALID_CONDITION"
            )
        if not record.is_open:
            raise InvalidTransition(f"Loan {record_id} was already closed as {record.status.value}.")

        status, kind = RETURNS[condition]
        now = self.clock()
        record.transition(status)
        record.return_date = now
        record.fine_amount = compute_fine(
            record.due_date, now, self.policy.fine_daily_rate, self.policy.fine_cap
        )
        self.registry.apply(record.item_id, kind)
        self.db.flush()
        logger.info(
            f"Loan {record_id} closed as {status.value}, fine {record.fine_amount}"
        )

        if kind == TransactionKind.RETURN:
            self.queue.fulfill_next(record.item_id)
        return record

    def pay_fine(self, record_id) -> CirculationRecord:
        record = self.get(record_id)
        if record.is_open:
            raise InvalidTransition(f"Loan {record_id} is still open; fines settle at return.")
        if record.fine_paid or not record.fine_amount:
            raise InvalidTransition(f"Loan {record_id} has no outstanding fine.", reason="NO_FINE_DUE")
        record.fine_paid = True
        record.fine_paid_date = self.clock()
        self.db.flush()
        return record

    def list_overdue(self, limit=None):
        """Open loans past due with the fine they would incur if returned now."""
        now = self.clock()
        return [
            (loan, days_overdue(loan.due_date, now), compute_fine(
                loan.due_date, now, self.policy.fine_daily_rate, self.policy.fine_cap
            ))
            for loan in CirculationRecord.overdue(self.db, now, limit=limit)
        ]

    def patron_loans(self, patron_id):
        return CirculationRecord.open_by_patron(self.db, patron_id)

    def loan_history(self, patron_id, status=None, offset=None, limit=None):
        """Every loan of a patron, open or closed, newest first."""
        status = coerce_enum(LoanStatus, status)
        return CirculationRecord.history(self.db, patron_id, status=status, offset=offset, limit=limit)

    def overdue_reminders(self):
        now = self.clock()
        reminders = []
        for loan, days, fine in self.list_overdue():
            reminders.append(Notification(
                patron_id=loan.patron_id,
                type=OVERDUE,
                message=(
                    f"Item {loan.item_id} was due {loan.due_date:%Y-%m-%d} and is {days} day(s) "
                    f"overdue; the fine so far is {fine}."
                ),
                item_id=loan.item_id,
                loan_id=loan.id,
                date=now
            ))
        return reminders

    def outstanding_fines(self, patron_id):
        total = sum(
            (loan.fine_amount for loan in self.db.query(CirculationRecord).filter(
                CirculationRecord.patron_id == patron_id,
                CirculationRecord.fine_paid == False,
            ).all()),
            start=to_money(0)
        )
        return to_money(total)
