from pydantic import BaseModel
from typing import Optional
from decimal import Decimal
from datetime import datetime
from stacks.core.models import LoanStatus

class CirculationRecord(BaseModel):
    id: int
    item_id: int
    patron_id: str
    issue_date: datetime
    due_date: datetime
    extended_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    status: LoanStatus
    fine_amount: Decimal
    fine_paid: bool
    fine_paid_date: Optional[datetime] = None
    renewal_count: int = 0
    reservation_id: Optional[int] = None

    class Config:
        from_attributes = True

class OverdueLoan(BaseModel):
    loan: CirculationRecord
    days_overdue: int
    accrued_fine: Decimal
