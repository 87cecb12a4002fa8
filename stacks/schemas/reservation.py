from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from stacks.core.models import ReservationStatus

class Reservation(BaseModel):
    id: int
    item_id: int
    patron_id: str
    reserved_date: datetime
    expiry_date: datetime
    pickup_date: Optional[datetime] = None
    status: ReservationStatus
    priority: int
    cancel_reason: Optional[str] = None

    class Config:
        from_attributes = True
