#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.test_registry
    ~~~~~~~~~~~~~~~~~~~

    This module tests the copy-count registry of the Stacks package.

    :copyright: (c) 2025 by Authors.
    :license: see LICENSE for more details.
"""

import pytest
from stacks.core.models import Bucket, ItemStatus, CatalogItem
from stacks.core.registry import TransactionKind, TRANSFERS
from stacks.core.exceptions import (
    Conflict,
    NotFound,
    ValidationError,
    InvariantViolation
)


def test_register_item(services, consistent):
    item = services.registry.register_item(3)
    assert item.id is not None
    assert item.total_copies == 3
    assert item.available_copies == 3
    assert item.borrowed_copies == item.reserved_copies == item.lost_copies == item.damaged_copies == 0
    assert item.status == ItemStatus.ACTIVE
    consistent(item)

@pytest.mark.parametrize("total", [0, -1, None, 1.5])
def test_register_item_rejects_bad_quantities(services, total):
    with pytest.raises(ValidationError) as excinfo:
        services.registry.register_item(total)
    assert excinfo.value.reason == "INVALID_QUANTITY"

def test_transfer_copy_moves_one_copy(services, consistent):
    item = services.registry.register_item(2)
    services.registry.transfer_copy(item.id, Bucket.AVAILABLE, Bucket.BORROWED)
    assert (item.available_copies, item.borrowed_copies) == (1, 1)
    services.registry.transfer_copy(item.id, Bucket.BORROWED, Bucket.LOST)
    assert (item.borrowed_copies, item.lost_copies) == (0, 1)
    consistent(item)

def test_transfer_from_empty_bucket_conflicts(services, consistent):
    item = services.registry.register_item(1)
    with pytest.raises(Conflict) as excinfo:
        services.registry.transfer_copy(item.id, Bucket.BORROWED, Bucket.AVAILABLE)
    assert excinfo.value.reason == "EMPTY_BUCKET"
    assert item.available_copies == 1
    consistent(item)

def test_transfer_from_empty_shelf_reports_no_copies(services):
    item = services.registry.register_item(1)
    services.registry.apply(item.id, TransactionKind.ISSUE)
    with pytest.raises(Conflict) as excinfo:
        services.registry.apply(item.id, TransactionKind.ISSUE)
    assert excinfo.value.reason == "NO_COPIES_AVAILABLE"

def test_transfer_unknown_or_retired_item(services):
    with pytest.raises(NotFound):
        services.registry.transfer_copy(404, Bucket.AVAILABLE, Bucket.BORROWED)
    item = services.registry.register_item(1)
    services.registry.retire_item(item.id)
    with pytest.raises(NotFound):
        services.registry.transfer_copy(item.id, Bucket.AVAILABLE, Bucket.BORROWED)

def test_every_transaction_kind_keeps_counts_consistent(services, consistent):
    item = services.registry.register_item(4)
    for kind in (TransactionKind.ISSUE, TransactionKind.ISSUE, TransactionKind.LOSS,
                 TransactionKind.DAMAGE, TransactionKind.REPAIR, TransactionKind.RECOVER,
                 TransactionKind.HOLD, TransactionKind.RELEASE, TransactionKind.ACQUIRE):
        services.registry.apply(item.id, kind)
        consistent(item)
    assert item.total_copies == 5
    assert item.available_copies == 5

def test_dispatch_table_covers_every_kind():
    assert set(TRANSFERS) == set(TransactionKind)
    for transfer in TRANSFERS.values():
        assert transfer.source or transfer.target

def test_acquire_and_withdraw_change_total(services, consistent):
    item = services.registry.register_item(1)
    services.registry.apply(item.id, TransactionKind.ACQUIRE)
    assert item.total_copies == 2
    services.registry.apply(item.id, TransactionKind.ISSUE)
    services.registry.apply(item.id, TransactionKind.DAMAGE)
    services.registry.apply(item.id, TransactionKind.WITHDRAW)
    assert item.total_copies == 1
    assert item.damaged_copies == 0
    consistent(item)

def test_withdraw_last_copy_conflicts(services):
    item = services.registry.register_item(1)
    services.registry.apply(item.id, TransactionKind.ISSUE)
    services.registry.apply(item.id, TransactionKind.DAMAGE)
    with pytest.raises(Conflict) as excinfo:
        services.registry.apply(item.id, TransactionKind.WITHDRAW)
    assert excinfo.value.reason == "LAST_COPY"
    assert item.damaged_copies == 1

def test_transfer_detects_broken_invariant(services, db_session):
    item = services.registry.register_item(2)
    # Corrupt the stock behind the registry's back
    item.total_copies = 5
    db_session.flush()
    with pytest.raises(InvariantViolation):
        services.registry.transfer_copy(item.id, Bucket.AVAILABLE, Bucket.BORROWED)

def test_set_status(services):
    item = services.registry.register_item(1)
    services.registry.set_status(item.id, ItemStatus.MAINTENANCE)
    assert item.status == ItemStatus.MAINTENANCE
    with pytest.raises(ValidationError):
        services.registry.set_status(item.id, ItemStatus.RETIRED)

def test_retire_item_with_open_loan_conflicts(services):
    item = services.registry.register_item(1)
    services.ledger.issue(item.id, "patron-a")
    with pytest.raises(Conflict) as excinfo:
        services.registry.retire_item(item.id)
    assert excinfo.value.reason == "OPEN_LOANS"
    assert item.status == ItemStatus.ACTIVE

def test_retire_item_with_active_reservation_conflicts(services):
    item = services.registry.register_item(1)
    loan = services.ledger.issue(item.id, "patron-a")
    services.queue.reserve(item.id, "patron-b")
    services.ledger.return_item(loan.id, "LOST")
    with pytest.raises(Conflict) as excinfo:
        services.registry.retire_item(item.id)
    assert excinfo.value.reason == "ACTIVE_RESERVATIONS"

def test_retire_item(services, db_session):
    item = services.registry.register_item(1)
    services.registry.retire_item(item.id)
    assert CatalogItem.get(db_session, item.id).status == ItemStatus.RETIRED
    with pytest.raises(NotFound):
        services.registry.retire_item(item.id)

def test_retire_item_is_visible_to_queries(services, db_session):
    item = services.registry.register_item(1)
    services.registry.retire_item(item.id)
    # Sessions here never autoflush; the retirement must already be written
    retired = db_session.query(CatalogItem).filter(CatalogItem.status == ItemStatus.RETIRED).all()
    assert [i.id for i in retired] == [item.id]
