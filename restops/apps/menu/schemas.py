from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class OverrideRequest(BaseModel):
    """Body of PUT /menu/branch-menu/<branch>/<item>/. Fields left out keep their stored value."""
    available: bool = True
    price_override: Optional[Decimal] = Field(default=None, ge=0)
