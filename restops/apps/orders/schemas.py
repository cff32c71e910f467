from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class CartLine(BaseModel):
    menu_item_id: int
    quantity: int = Field(default=1, ge=1)


class OrderRequest(BaseModel):
    """Body of POST /orders/ (cashier POS and website checkout)."""
    items: List[CartLine] = Field(min_length=1)
    source: Literal['POS', 'WEBSITE'] = 'POS'
    order_type: Literal['DINE_IN', 'TAKEAWAY', 'DELIVERY'] = 'DINE_IN'
    payment_method: Optional[Literal['CASH', 'CARD']] = None
    discount_amount: Decimal = Field(default=Decimal('0'), ge=0)
    branch_id: Optional[int] = None
    table_id: Optional[int] = None
    customer_name: str = Field(default='', max_length=100)
    customer_phone: str = Field(default='', max_length=20)
    delivery_address: str = ''
    notes: str = ''

    @model_validator(mode='after')
    def delivery_needs_address(self):
        if self.order_type == 'DELIVERY' and not self.delivery_address.strip():
            raise ValueError('delivery_address is required for delivery orders')
        return self


class StatusUpdate(BaseModel):
    status: Literal['UNPROCESSED', 'PENDING', 'READY', 'COMPLETED', 'CANCELLED']


class PaymentRequest(BaseModel):
    payment_method: Literal['CASH', 'CARD']
    amount_received: Optional[Decimal] = Field(default=None, ge=0)
    amount_returned: Optional[Decimal] = Field(default=None, ge=0)

