from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator


class StockAdjustment(BaseModel):
    """PATCH /inventory/stock/<item_id>/ body. ``delta`` may be negative."""
    delta: Decimal
    branch_id: Optional[int] = None
    reason: Optional[str] = None

    @field_validator('delta')
    @classmethod
    def non_zero(cls, value):
        if value == 0:
            raise ValueError('delta must not be zero')
        return value


class BranchInventoryCopy(BaseModel):
    source_branch_id: int
    target_branch_id: int
    item_ids: Optional[list[int]] = None
