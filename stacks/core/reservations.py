#!/usr/bin/env python

"""
    Reservation Queue for Stacks.

    Holds are queued per item in arrival order. When a copy comes back
    (or new stock appears) the earliest eligible hold is converted
    directly into a loan, so the copy never becomes generally available
    while someone is waiting for it.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from datetime import timedelta
from stacks.core.models import (
    CirculationRecord,
    Reservation,
    ReservationStatus,
    LoanStatus
)
from stacks.core.registry import TransactionKind
from stacks.core.notifications import HOLD_READY, RESERVATION_EXPIRING
from stacks.core.utils import require_patron_id, require_period, coerce_enum
from stacks.core.exceptions import Conflict, NotFound
from stacks.schemas.notification import Notification

logger = logging.getLogger(__name__)


class ReservationQueue:

    def __init__(self, db, registry, gate, policy, clock):
        self.db = db
        self.registry = registry
        self.gate = gate
        self.policy = policy
        self.clock = clock
        # Notices to send once the surrounding transaction has committed
        self.outbox = []

    def get(self, reservation_id) -> Reservation:
        if reservation := Reservation.get(self.db, reservation_id):
            return reservation
        raise NotFound(f"Reservation {reservation_id} does not exist.", reason="RESERVATION_NOT_FOUND")

    def queue_for(self, item_id):
        return Reservation.active_by_item(self.db, item_id)

    def patron_reservations(self, patron_id):
        return Reservation.active_by_patron(self.db, patron_id)

    def reservation_history(self, patron_id, status=None, offset=None, limit=None):
        """Every reservation of a patron whatever its status, newest first."""
        status = coerce_enum(ReservationStatus, status)
        return Reservation.history(self.db, patron_id, status=status, offset=offset, limit=limit)

    def reserve(self, item_id, patron_id, hold_period_days=None) -> Reservation:
        patron_id = require_patron_id(patron_id)
        hold_period_days = require_period(hold_period_days, self.policy.hold_period_days, "Hold period")

        item = self.registry._writable(item_id)
        self.gate.check_reserve(item, patron_id).raise_for_reason(f" for item {item_id}")
        if item.available_copies > 0 and not self.policy.allow_hold_when_available:
            raise Conflict(
                f"Item {item_id} has copies on the shelf; borrow it instead.",
                reason="COPIES_AVAILABLE"
            )

        now = self.clock()
        reservation = Reservation(
            item_id=item_id,
            patron_id=patron_id,
            reserved_date=now,
            expiry_date=now + timedelta(days=hold_period_days),
            status=ReservationStatus.ACTIVE,
            priority=Reservation.next_priority(self.db, item_id)
        )
        self.db.add(reservation)
        self.db.flush()
        logger.info(f"Patron {patron_id} reserved item {item_id} (priority {reservation.priority})")
        return reservation

    def cancel(self, reservation_id, reason=None) -> Reservation:
        reservation = self.get(reservation_id)
        reservation.transition(ReservationStatus.CANCELLED)
        reservation.cancel_reason = reason
        self.db.flush()
        logger.info(f"Reservation {reservation_id} cancelled")
        return reservation

    def complete(self, reservation, loan_period_days=None) -> CirculationRecord:
        """Turns an ACTIVE hold into an ISSUED loan, taking one available copy."""
        if loan_period_days is None:
            loan_period_days = self.policy.loan_period_days
        now = self.clock()
        reservation.transition(ReservationStatus.COMPLETED)
        reservation.pickup_date = now
        self.registry.apply(reservation.item_id, TransactionKind.ISSUE)
        loan = CirculationRecord(
            item_id=reservation.item_id,
            patron_id=reservation.patron_id,
            issue_date=now,
            due_date=now + timedelta(days=loan_period_days),
            status=LoanStatus.ISSUED,
            fine_amount=0,
            fine_paid=False,
            renewal_count=0,
            reservation_id=reservation.id
        )
        self.db.add(loan)
        self.db.flush()
        return loan

    def fulfill_next(self, item_id):
        """Converts the first eligible ACTIVE hold on `item_id` into a loan.

        Returns the new loan, or None when nobody is waiting and the copy
        stays on the shelf. A hold stays eligible until the sweep marks it
        EXPIRED; holds whose patron is currently ineligible keep their place.
        """
        item = self.registry._writable(item_id)
        if not item.is_lendable:
            return None

        now = self.clock()
        for reservation in Reservation.active_by_item(self.db, item_id):
            if CirculationRecord.open_for(self.db, item_id, reservation.patron_id):
                continue
            decision = self.gate.check_patron(reservation.patron_id)
            if not decision.allowed:
                logger.info(
                    f"Skipping reservation {reservation.id}: patron "
                    f"{reservation.patron_id} is {decision.reason.value}"
                )
                continue
            loan = self.complete(reservation)
            logger.info(f"Fulfilled reservation {reservation.id} as loan {loan.id}")
            self.outbox.append(Notification(
                patron_id=reservation.patron_id,
                type=HOLD_READY,
                message=f"Your reservation for item {item_id} is ready; it is now on loan to you until {loan.due_date:%Y-%m-%d}.",
                item_id=item_id,
                reservation_id=reservation.id,
                loan_id=loan.id,
                date=now
            ))
            return loan
        return None

    def fulfill_available(self, item_id):
        """Runs `fulfill_next` until the queue or the shelf is empty."""
        loans = []
        while loan := self.fulfill_next(item_id):
            loans.append(loan)
        return loans

    def expired_item_ids(self):
        now = self.clock()
        return sorted({r.item_id for r in Reservation.expired(self.db, now)})

    def sweep_expired(self, item_id=None):
        """Moves every ACTIVE hold whose expiry date has passed to EXPIRED."""
        now = self.clock()
        expired = Reservation.expired(self.db, now, item_id=item_id)
        for reservation in expired:
            reservation.transition(ReservationStatus.EXPIRED)
        self.db.flush()
        if expired:
            logger.info(f"Expired {len(expired)} reservation(s)")
        return expired

    def expiring_notices(self, window_hours=None):
        """RESERVATION_EXPIRING notices for ACTIVE holds that lapse within
        `window_hours`. Holds already past expiry are left to the sweep."""
        if window_hours is None:
            window_hours = self.policy.expiry_notice_hours
        now = self.clock()
        notices = []
        for reservation in Reservation.expiring(self.db, now, now + timedelta(hours=window_hours)):
            notices.append(Notification(
                patron_id=reservation.patron_id,
                type=RESERVATION_EXPIRING,
                message=(
                    f"Your reservation for item {reservation.item_id} expires "
                    f"{reservation.expiry_date:%Y-%m-%d %H:%M} UTC."
                ),
                item_id=reservation.item_id,
                reservation_id=reservation.id,
                date=now
            ))
        return notices
