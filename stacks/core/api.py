#!/usr/bin/env python

"""
    Caller API for Stacks.

    `StacksAPI` is the surface an outer layer (HTTP routes, a CLI, a job
    runner) talks to. Each operation runs as one unit of work: it takes
    the lock of the item it touches, opens a transaction, builds the
    circulation services on that transaction and commits or rolls back
    as a whole. Expected failures come back as a `Result` carrying a
    typed error instead of an exception.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from contextlib import nullcontext
from typing import NamedTuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from stacks.configs import TX_RETRIES
from stacks.core import db as database
from stacks.core import models
from stacks.core.utils import utcnow
from stacks.core.registry import Registry, TransactionKind, TRANSFERS
from stacks.core.gate import AvailabilityGate
from stacks.core.ledger import Ledger
from stacks.core.reservations import ReservationQueue
from stacks.core.patrons import LedgerPatronDirectory
from stacks.core.notifications import LogNotifier, dispatch
from stacks.core.locks import ItemLocks
from stacks.core.exceptions import StacksError, Conflict, InvariantViolation
from stacks.schemas.item import CatalogItem
from stacks.schemas.loan import CirculationRecord, OverdueLoan
from stacks.schemas.reservation import Reservation
from stacks.schemas.policy import Policy
from stacks.schemas.result import Result

logger = logging.getLogger(__name__)

SCHEMAS = {
    models.CatalogItem: CatalogItem,
    models.CirculationRecord: CirculationRecord,
    models.Reservation: Reservation,
}


class Services(NamedTuple):
    registry: Registry
    gate: AvailabilityGate
    queue: ReservationQueue
    ledger: Ledger


def snapshot(value):
    """Freezes ORM rows into pydantic schemas before the session closes."""
    if isinstance(value, list):
        return [snapshot(v) for v in value]
    if schema := SCHEMAS.get(type(value)):
        return schema.model_validate(value)
    return value


class StacksAPI:

    def __init__(self, session_factory=None, patrons=None, notifier=None,
                 policy=None, clock=utcnow, locks=None, retries=TX_RETRIES):
        self.session_factory = session_factory or database.session
        self.patrons = patrons
        self.notifier = notifier or LogNotifier()
        self.policy = policy or Policy()
        self.clock = clock
        self.locks = locks or ItemLocks()
        self.retries = max(1, retries)

    def services(self, db) -> Services:
        patrons = self.patrons or LedgerPatronDirectory(db, self.policy, self.clock)
        registry = Registry(db)
        gate = AvailabilityGate(db, patrons)
        queue = ReservationQueue(db, registry, gate, self.policy, self.clock)
        ledger = Ledger(db, registry, gate, queue, self.policy, self.clock)
        return Services(registry, gate, queue, ledger)

    def _run(self, item_id, work) -> Result:
        for attempt in range(1, self.retries + 1):
            try:
                guard = self.locks.hold(item_id) if item_id is not None else nullcontext()
                with guard, database.transaction(self.session_factory) as db:
                    services = self.services(db)
                    value = snapshot(work(services))
                    outbox = list(services.queue.outbox)
            except StaleDataError as e:
                logger.warning(f"Item {item_id} changed underneath us (attempt {attempt}): {e}")
                continue
            except InvariantViolation as e:
                logger.critical(f"Aborted unit of work on item {item_id}: {e.message}")
                return Result.failure(e)
            except StacksError as e:
                logger.info(f"{type(e).__name__}({e.reason}) on item {item_id}: {e.message}")
                return Result.failure(e)
            except IntegrityError as e:
                logger.warning(f"Constraint rejected write on item {item_id}: {e.orig}")
                return Result.failure(Conflict(
                    "A database constraint rejected this change; a concurrent request may already have made it.",
                    reason="CONCURRENT_UPDATE"
                ))
            dispatch(self.notifier, outbox)
            return Result.success(value)
        return Result.failure(Conflict(
            f"Item {item_id} kept changing; gave up after {self.retries} attempts.",
            reason="CONCURRENT_UPDATE"
        ))

    def _item_of(self, model, key):
        """Item id a loan or reservation belongs to, read before locking.
        It never changes for a given row, so reading it unlocked is safe."""
        with database.transaction(self.session_factory) as db:
            if row := model.get(db, key):
                return row.item_id
        return None

    # Catalog items

    def register_item(self, total_copies: int) -> Result:
        return self._run(None, lambda s: s.registry.register_item(total_copies))

    def get_item(self, item_id) -> Result:
        return self._run(None, lambda s: s.registry.get_item(item_id))

    def list_items(self, offset=None, limit=None) -> Result:
        return self._run(None, lambda s: s.registry.list_items(offset, limit))

    def transfer(self, item_id, kind: TransactionKind) -> Result:
        """Applies a stock movement; copies arriving on the shelf go to
        waiting holds first."""
        def work(s):
            item = s.registry.apply(item_id, kind)
            if TRANSFERS[kind].target == models.Bucket.AVAILABLE:
                s.queue.fulfill_available(item_id)
            return item
        return self._run(item_id, work)

    def set_item_status(self, item_id, status: models.ItemStatus) -> Result:
        def work(s):
            item = s.registry.set_status(item_id, status)
            if status == models.ItemStatus.ACTIVE:
                s.queue.fulfill_available(item_id)
            return item
        return self._run(item_id, work)

    def retire_item(self, item_id) -> Result:
        return self._run(item_id, lambda s: s.registry.retire_item(item_id))

    # Loans

    def issue(self, item_id, patron_id, loan_period_days=None) -> Result:
        return self._run(item_id, lambda s: s.ledger.issue(item_id, patron_id, loan_period_days))

    def extend(self, record_id, new_due_date) -> Result:
        item_id = self._item_of(models.CirculationRecord, record_id)
        return self._run(item_id, lambda s: s.ledger.extend(record_id, new_due_date))

    def return_item(self, record_id, reported_condition=models.Condition.GOOD) -> Result:
        item_id = self._item_of(models.CirculationRecord, record_id)
        return self._run(item_id, lambda s: s.ledger.return_item(record_id, reported_condition))

    def pay_fine(self, record_id) -> Result:
        item_id = self._item_of(models.CirculationRecord, record_id)
        return self._run(item_id, lambda s: s.ledger.pay_fine(record_id))

    def patron_loans(self, patron_id) -> Result:
        return self._run(None, lambda s: s.ledger.patron_loans(patron_id))

    def outstanding_fines(self, patron_id) -> Result:
        return self._run(None, lambda s: s.ledger.outstanding_fines(patron_id))

    def loan_history(self, patron_id, status=None, offset=None, limit=None) -> Result:
        return self._run(None, lambda s: s.ledger.loan_history(patron_id, status, offset, limit))

    def list_overdue(self, limit=None) -> Result:
        def work(s):
            return [
                OverdueLoan(loan=snapshot(loan), days_overdue=days, accrued_fine=fine)
                for loan, days, fine in s.ledger.list_overdue(limit=limit)
            ]
        return self._run(None, work)

    # Reservations

    def reserve(self, item_id, patron_id, hold_period_days=None) -> Result:
        return self._run(item_id, lambda s: s.queue.reserve(item_id, patron_id, hold_period_days))

    def cancel(self, reservation_id, reason=None) -> Result:
        item_id = self._item_of(models.Reservation, reservation_id)
        return self._run(item_id, lambda s: s.queue.cancel(reservation_id, reason))

    def fulfill_next(self, item_id) -> Result:
        return self._run(item_id, lambda s: s.queue.fulfill_next(item_id))

    def queue_for(self, item_id) -> Result:
        return self._run(None, lambda s: s.queue.queue_for(item_id))

    def patron_reservations(self, patron_id) -> Result:
        return self._run(None, lambda s: s.queue.patron_reservations(patron_id))

    def reservation_history(self, patron_id, status=None, offset=None, limit=None) -> Result:
        return self._run(None, lambda s: s.queue.reservation_history(patron_id, status, offset, limit))

    def sweep_expired(self) -> Result:
        """Expires overdue holds one item at a time, each under its item's
        lock so a sweep never races a fulfillment of the same hold."""
        found = self._run(None, lambda s: s.queue.expired_item_ids())
        if not found.ok:
            return found
        expired, failure = [], None
        for item_id in found.value:
            result = self._run(item_id, lambda s: s.queue.sweep_expired(item_id))
            if result.ok:
                expired.extend(result.value)
            else:
                logger.error(f"Sweep of item {item_id} failed: {result.error.message}")
                failure = failure or result
        return failure or Result.success(expired)

    def send_reminders(self, window_hours=None) -> Result:
        """Sends OVERDUE reminders for late loans and RESERVATION_EXPIRING
        notices for holds about to lapse. Nothing is written, so no item
        lock is taken."""
        def work(s):
            notices = s.ledger.overdue_reminders() + s.queue.expiring_notices(window_hours)
            s.queue.outbox.extend(notices)
            return notices
        return self._run(None, work)
