from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class Notification(BaseModel):
    patron_id: str = Field(..., min_length=1, max_length=50)
    type: str = Field(..., min_length=1, max_length=50)
    message: str = Field(..., min_length=1)
    item_id: Optional[int] = None
    reservation_id: Optional[int] = None
    loan_id: Optional[int] = None
    date: Optional[datetime] = None
