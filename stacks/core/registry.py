#!/usr/bin/env python

"""
    Catalog Item Registry for Stacks.

    The registry owns the copy counts of every CatalogItem. Every quantity
    change, whether a loan, a return, a loss or a newly acquired copy, is
    a move of one copy between two buckets, described once in the
    `TRANSFERS` table and applied by `Registry.transfer_copy`. The
    copy-count invariant is re-verified after each move.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import enum
import logging
from typing import NamedTuple, Optional
from stacks.core.models import (
    CatalogItem,
    CirculationRecord,
    Reservation,
    Bucket,
    ItemStatus
)
from stacks.core.exceptions import (
    Conflict,
    NotFound,
    ValidationError,
    InvariantViolation
)

logger = logging.getLogger(__name__)


class Transfer(NamedTuple):
    """One copy leaves `source` and enters `target`. A None side is
    outside the stock, so the item's total changes with the move."""
    source: Optional[Bucket]
    target: Optional[Bucket]

class TransactionKind(enum.Enum):
    ISSUE = "ISSUE"
    RETURN = "RETURN"
    LOSS = "LOSS"
    DAMAGE = "DAMAGE"
    REPAIR = "REPAIR"
    RECOVER = "RECOVER"
    HOLD = "HOLD"
    RELEASE = "RELEASE"
    ACQUIRE = "ACQUIRE"
    WITHDRAW = "WITHDRAW"

TRANSFERS = {
    TransactionKind.ISSUE: Transfer(Bucket.AVAILABLE, Bucket.BORROWED),
    TransactionKind.RETURN: Transfer(Bucket.BORROWED, Bucket.AVAILABLE),
    TransactionKind.LOSS: Transfer(Bucket.BORROWED, Bucket.LOST),
    TransactionKind.DAMAGE: Transfer(Bucket.BORROWED, Bucket.DAMAGED),
    TransactionKind.REPAIR: Transfer(Bucket.DAMAGED, Bucket.AVAILABLE),
    TransactionKind.RECOVER: Transfer(Bucket.LOST, Bucket.AVAILABLE),
    TransactionKind.HOLD: Transfer(Bucket.AVAILABLE, Bucket.RESERVED),
    TransactionKind.RELEASE: Transfer(Bucket.RESERVED, Bucket.AVAILABLE),
    TransactionKind.ACQUIRE: Transfer(None, Bucket.AVAILABLE),
    TransactionKind.WITHDRAW: Transfer(Bucket.DAMAGED, None),
}

# Status changes allowed through `set_status`; RETIRED has its own checks.
SETTABLE_STATUSES = {ItemStatus.ACTIVE, ItemStatus.INACTIVE, ItemStatus.MAINTENANCE}


class Registry:

    def __init__(self, db):
        self.db = db

    def get_item(self, item_id) -> CatalogItem:
        if item := CatalogItem.get(self.db, item_id):
            return item
        raise NotFound(f"Item {item_id} does not exist.", reason="ITEM_NOT_FOUND")

    def list_items(self, offset=None, limit=None):
        return CatalogItem.get_many(self.db, offset=offset, limit=limit)

    def _writable(self, item_id) -> CatalogItem:
        item = CatalogItem.get(self.db, item_id, for_update=True)
        if not item or item.status == ItemStatus.RETIRED:
            raise NotFound(f"Item {item_id} does not exist or is retired.", reason="ITEM_NOT_FOUND")
        return item

    def register_item(self, total_copies: int) -> CatalogItem:
        if not isinstance(total_copies, int) or total_copies < 1:
            raise ValidationError(
                f"An item needs at least one copy, got {total_copies!r}.",
                reason="INVALID_QUANTITY"
            )
        item = CatalogItem(
            total_copies=total_copies,
            available_copies=total_copies,
            borrowed_copies=0,
            reserved_copies=0,
            lost_copies=0,
            damaged_copies=0,
            status=ItemStatus.ACTIVE
        )
        self.db.add(item)
        self.db.flush()
        logger.info(f"Registered item {item.id} with {total_copies} copies")
        return item

    def transfer_copy(self, item_id, from_bucket: Optional[Bucket], to_bucket: Optional[Bucket]) -> CatalogItem:
        """Moves one copy from `from_bucket` to `to_bucket` in a single step.

        Raises:
            NotFound: if the item is missing or retired.
            Conflict: if the source bucket holds no copy to move, or the
                move would remove the last copy of the item.
            InvariantViolation: if the counts fail to reconcile afterwards.
        """
        if from_bucket is None and to_bucket is None:
            raise ValidationError("A transfer needs a source or a target bucket.")
        item = self._writable(item_id)

        if from_bucket is not None:
            if item.count(from_bucket) < 1:
                raise Conflict(
                    f"Item {item_id} has no {from_bucket.name.lower()} copy to move.",
                    reason="NO_COPIES_AVAILABLE" if from_bucket == Bucket.AVAILABLE else "EMPTY_BUCKET"
                )
            if to_bucket is None and item.total_copies <= 1:
                raise Conflict(
                    f"Item {item_id} cannot drop its last copy; retire it instead.",
                    reason="LAST_COPY"
                )
            setattr(item, from_bucket.value, item.count(from_bucket) - 1)
            if to_bucket is None:
                item.total_copies -= 1

        if to_bucket is not None:
            setattr(item, to_bucket.value, item.count(to_bucket) + 1)
            if from_bucket is None:
                item.total_copies += 1

        try:
            item.check_invariant()
        except InvariantViolation as e:
            logger.critical(f"Copy-count invariant broken: {e.message}")
            raise
        self.db.flush()
        logger.debug(
            f"Item {item_id}: moved a copy "
            f"{from_bucket.name if from_bucket else '-'} -> {to_bucket.name if to_bucket else '-'}"
        )
        return item

    def apply(self, item_id, kind: TransactionKind) -> CatalogItem:
        transfer = TRANSFERS[kind]
        return self.transfer_copy(item_id, transfer.source, transfer.target)

    def set_status(self, item_id, status: ItemStatus) -> CatalogItem:
        if status not in SETTABLE_STATUSES:
            raise ValidationError(
                f"Status {status.value} cannot be set directly.", reason="INVALID_STATUS"
            )
        item = self._writable(item_id)
        item.status = status
        self.db.flush()
        return item

    def retire_item(self, item_id) -> CatalogItem:
        item = self._writable(item_id)
        if CirculationRecord.open_by_item(self.db, item_id):
            raise Conflict(f"Item {item_id} still has loans out.", reason="OPEN_LOANS")
        if Reservation.active_by_item(self.db, item_id):
            raise Conflict(f"Item {item_id} still has active reservations.", reason="ACTIVE_RESERVATIONS")
        item.status = ItemStatus.RETIRED
        self.db.flush()
        logger.info(f"Retired item {item_id}")
        return item
