#!/usr/bin/env python
"""
    Item Schema for Stacks,
    a read-only snapshot of a CatalogItem's copy counts.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from pydantic import BaseModel
from stacks.core.models import ItemStatus

class CatalogItem(BaseModel):

    id: int
    total_copies: int
    available_copies: int
    borrowed_copies: int
    reserved_copies: int
    lost_copies: int
    damaged_copies: int
    status: ItemStatus
    version: int

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "total_copies": 2,
                "available_copies": 1,
                "borrowed_copies": 1,
                "reserved_copies": 0,
                "lost_copies": 0,
                "damaged_copies": 0,
                "status": "ACTIVE",
                "version": 2
            }
        }
