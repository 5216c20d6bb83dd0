# backend/schemas/product.py
import uuid
from pydantic import BaseModel, Field
from typing import List

from schemas.table_entity import ORMBase, TableEntity

PRODUCT_PARTITION = "Product"


# Stored product entity
class Product(TableEntity):
    partition_key: str = PRODUCT_PARTITION
    row_key: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    price: float = Field(..., ge=0)
    stock_quantity: int = Field(..., ge=0)
    image_url: str = ""

    @property
    def product_id(self) -> str:
        return self.row_key


# Full product representation including ID
class ProductOut(ORMBase):
    id: str = Field(validation_alias="row_key")
    name: str
    description: str = ""
    price: float
    stock_quantity: int
    image_url: str = ""
    etag: str


# Lightweight view used by the order form
class ProductDetails(BaseModel):
    price: float
    stock: int
    name: str


class ProductList(BaseModel):
    items: List[ProductOut]
    total: int
