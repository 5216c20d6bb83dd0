import uuid
from pydantic import BaseModel, Field, computed_field
from typing import List, Optional
from datetime import datetime

from schemas.table_entity import ORMBase, TableEntity

ORDER_PARTITION = "Order"
DEFAULT_ORDER_STATUS = "Pending"


# Stored order entity. total_price is always derived, never persisted.
class Order(TableEntity):
    partition_key: str = ORDER_PARTITION
    row_key: str = Field(default_factory=lambda: str(uuid.uuid4()))
    customer_id: str
    product_id: str
    quantity: int = Field(..., gt=0)
    order_status: str = DEFAULT_ORDER_STATUS
    order_date: datetime
    unit_price: float
    product_name: str
    customer_name: str
    username: str

    @property
    def order_id(self) -> str:
        return self.row_key

    @property
    def total_price(self) -> float:
        return round(self.unit_price * self.quantity, 2)


# Input schema for placing an order; no price fields are accepted
class OrderCreate(BaseModel):
    customer_id: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    order_status: Optional[str] = None


# Output schema representing the full order details
class OrderResponse(ORMBase):
    id: str = Field(validation_alias="row_key")
    customer_id: str
    product_id: str
    quantity: int
    order_status: str
    order_date: datetime
    unit_price: float
    product_name: str
    customer_name: str
    username: str
    etag: str

    @computed_field
    @property
    def total_price(self) -> float:
        return round(self.unit_price * self.quantity, 2)


class OrderList(BaseModel):
    items: List[OrderResponse]
    total: int


# Schema for updating order status; etag must be the one last read
class OrderStatusPatch(BaseModel):
    status: str = Field(..., min_length=1)
    etag: str
