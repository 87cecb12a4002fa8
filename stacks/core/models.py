#!/usr/bin/env python

"""
    Circulation Models for Stacks,
    including the catalog item stock, loan and reservation tables
    and the state machines their statuses move through.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Numeric,
    CheckConstraint, Index, Enum as SQLAlchemyEnum, func, text
)
from sqlalchemy.ext.hybrid import hybrid_property
from stacks.core.db import Base
from stacks.core.exceptions import InvalidTransition, InvariantViolation
import enum


class ItemStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    MAINTENANCE = "MAINTENANCE"
    RETIRED = "RETIRED"

class LoanStatus(enum.Enum):
    ISSUED = "ISSUED"
    EXTENDED = "EXTENDED"
    RETURNED = "RETURNED"
    LOST = "LOST"
    DAMAGED = "DAMAGED"

class ReservationStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

class Bucket(enum.Enum):
    """Copy-count buckets of a CatalogItem; values are column names."""
    AVAILABLE = "available_copies"
    BORROWED = "borrowed_copies"
    RESERVED = "reserved_copies"
    LOST = "lost_copies"
    DAMAGED = "damaged_copies"

class Condition(enum.Enum):
    """Condition a copy is reported in when it comes back."""
    GOOD = "GOOD"
    LOST = "LOST"
    DAMAGED = "DAMAGED"


LOAN_TRANSITIONS = {
    LoanStatus.ISSUED: {LoanStatus.EXTENDED, LoanStatus.RETURNED, LoanStatus.LOST, LoanStatus.DAMAGED},
    LoanStatus.EXTENDED: {LoanStatus.EXTENDED, LoanStatus.RETURNED, LoanStatus.LOST, LoanStatus.DAMAGED},
}
OPEN_LOAN_STATUSES = tuple(LOAN_TRANSITIONS)

RESERVATION_TRANSITIONS = {
    ReservationStatus.ACTIVE: {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED, ReservationStatus.EXPIRED},
}


class CatalogItem(Base):
    __tablename__ = 'items'

    id = Column(Integer, primary_key=True)
    total_copies = Column(Integer, nullable=False)
    available_copies = Column(Integer, default=0, nullable=False)
    borrowed_copies = Column(Integer, default=0, nullable=False)
    reserved_copies = Column(Integer, default=0, nullable=False)
    lost_copies = Column(Integer, default=0, nullable=False)
    damaged_copies = Column(Integer, default=0, nullable=False)
    status = Column(SQLAlchemyEnum(ItemStatus), default=ItemStatus.ACTIVE, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint('total_copies >= 1', name='ck_items_total_positive'),
        CheckConstraint(
            'available_copies >= 0 AND borrowed_copies >= 0 AND reserved_copies >= 0 '
            'AND lost_copies >= 0 AND damaged_copies >= 0',
            name='ck_items_buckets_non_negative'
        ),
    )

    @hybrid_property
    def counted_copies(self):
        """Sum of every bucket; equals `total_copies` when consistent."""
        return (self.available_copies + self.borrowed_copies + self.reserved_copies
                + self.lost_copies + self.damaged_copies)

    @property
    def is_lendable(self):
        return self.status == ItemStatus.ACTIVE and self.available_copies > 0

    def count(self, bucket: Bucket) -> int:
        return getattr(self, bucket.value)

    def check_invariant(self):
        if self.total_copies != self.counted_copies or any(self.count(b) < 0 for b in Bucket):
            raise InvariantViolation(
                f"Item {self.id}: total={self.total_copies} but "
                + ", ".join(f"{b.name.lower()}={self.count(b)}" for b in Bucket)
            )

    @classmethod
    def get(cls, db, item_id, for_update=False):
        query = db.query(cls).filter(cls.id == item_id)
        if for_update:
            query = query.with_for_update()
        return query.first()


class CirculationRecord(Base):
    __tablename__ = 'loans'

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, nullable=False, index=True)
    patron_id = Column(String(50), nullable=False, index=True)
    issue_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False)
    extended_date = Column(DateTime)
    return_date = Column(DateTime)
    status = Column(SQLAlchemyEnum(LoanStatus), default=LoanStatus.ISSUED, nullable=False)
    fine_amount = Column(Numeric(10, 2), default=0, nullable=False)
    fine_paid = Column(Boolean, default=False, nullable=False)
    fine_paid_date = Column(DateTime)
    renewal_count = Column(Integer, default=0, nullable=False)
    reservation_id = Column(Integer)

    __table_args__ = (
        CheckConstraint('due_date > issue_date', name='ck_loans_due_after_issue'),
        Index(
            'uq_loans_open_pair', 'item_id', 'patron_id', unique=True,
            sqlite_where=text("status IN ('ISSUED', 'EXTENDED')"),
            postgresql_where=text("status IN ('ISSUED', 'EXTENDED')"),
        ),
    )

    @property
    def is_open(self):
        return self.status in OPEN_LOAN_STATUSES

    def is_overdue(self, now) -> bool:
        return self.is_open and now > self.due_date

    def transition(self, status: LoanStatus):
        if status not in LOAN_TRANSITIONS.get(self.status, ()):
            raise InvalidTransition(
                f"Loan {self.id} cannot move from {self.status.value} to {status.value}."
            )
        self.status = status

    @classmethod
    def get(cls, db, record_id):
        return db.query(cls).filter(cls.id == record_id).first()

    @classmethod
    def _open(cls, db):
        return db.query(cls).filter(cls.status.in_(OPEN_LOAN_STATUSES))

    @classmethod
    def open_for(cls, db, item_id, patron_id):
        return cls._open(db).filter(cls.item_id == item_id, cls.patron_id == patron_id).first()

    @classmethod
    def open_by_item(cls, db, item_id):
        return cls._open(db).filter(cls.item_id == item_id).all()

    @classmethod
    def open_by_patron(cls, db, patron_id):
        return cls._open(db).filter(cls.patron_id == patron_id).order_by(cls.due_date).all()

    @classmethod
    def overdue(cls, db, now, limit=None):
        return cls._open(db).filter(cls.due_date < now).order_by(cls.due_date).limit(limit).all()

    @classmethod
    def history(cls, db, patron_id, status=None, offset=None, limit=None):
        query = db.query(cls).filter(cls.patron_id == patron_id)
        if status is not None:
            query = query.filter(cls.status == status)
        return query.order_by(cls.issue_date.desc(), cls.id.desc()).offset(offset).limit(limit).all()


class Reservation(Base):
    __tablename__ = 'reservations'

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, nullable=False, index=True)
    patron_id = Column(String(50), nullable=False, index=True)
    reserved_date = Column(DateTime, nullable=False)
    expiry_date = Column(DateTime, nullable=False)
    pickup_date = Column(DateTime)
    status = Column(SQLAlchemyEnum(ReservationStatus), default=ReservationStatus.ACTIVE, nullable=False)
    priority = Column(Integer, nullable=False)
    cancel_reason = Column(String(255))

    __table_args__ = (
        CheckConstraint('expiry_date > reserved_date', name='ck_reservations_expiry_after_reserved'),
        Index(
            'uq_reservations_active_pair', 'item_id', 'patron_id', unique=True,
            sqlite_where=text("status = 'ACTIVE'"),
            postgresql_where=text("status = 'ACTIVE'"),
        ),
    )

    @property
    def is_active(self):
        return self.status == ReservationStatus.ACTIVE

    def is_expired(self, now) -> bool:
        return self.is_active and now > self.expiry_date

    def transition(self, status: ReservationStatus):
        if status not in RESERVATION_TRANSITIONS.get(self.status, ()):
            raise InvalidTransition(
                f"Reservation {self.id} cannot move from {self.status.value} to {status.value}."
            )
        self.status = status

    @classmethod
    def get(cls, db, reservation_id):
        return db.query(cls).filter(cls.id == reservation_id).first()

    @classmethod
    def _active(cls, db):
        return db.query(cls).filter(cls.status == ReservationStatus.ACTIVE)

    @classmethod
    def active_for(cls, db, item_id, patron_id):
        return cls._active(db).filter(cls.item_id == item_id, cls.patron_id == patron_id).first()

    @classmethod
    def active_by_item(cls, db, item_id):
        """ACTIVE holds on an item in fulfillment order."""
        return cls._active(db).filter(cls.item_id == item_id).order_by(
            cls.reserved_date, cls.priority
        ).all()

    @classmethod
    def active_by_patron(cls, db, patron_id):
        return cls._active(db).filter(cls.patron_id == patron_id).order_by(cls.reserved_date).all()

    @classmethod
    def expired(cls, db, now, item_id=None):
        query = cls._active(db).filter(cls.expiry_date < now)
        if item_id is not None:
            query = query.filter(cls.item_id == item_id)
        return query.order_by(cls.expiry_date).all()

    @classmethod
    def next_priority(cls, db, item_id) -> int:
        highest = db.query(func.max(cls.priority)).filter(cls.item_id == item_id).scalar()
        return (highest or 0) + 1

    @classmethod
    def expiring(cls, db, now, until):
        """ACTIVE holds still valid at `now` that lapse by `until`."""
        return cls._active(db).filter(cls.expiry_date > now, cls.expiry_date <= until).order_by(
            cls.expiry_date
        ).all()

    @classmethod
    def history(cls, db, patron_id, status=None, offset=None, limit=None):
        query = db.query(cls).filter(cls.patron_id == patron_id)
        if status is not None:
            query = query.filter(cls.status == status)
        return query.order_by(cls.reserved_date.desc(), cls.id.desc()).offset(offset).limit(limit).all()
