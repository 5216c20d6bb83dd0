# backend/schemas/customer.py
import uuid
from pydantic import BaseModel, EmailStr, Field
from typing import List

from schemas.table_entity import ORMBase, TableEntity

CUSTOMER_PARTITION = "Customer"


# Stored customer entity
class Customer(TableEntity):
    partition_key: str = CUSTOMER_PARTITION
    row_key: str = Field(default_factory=lambda: str(uuid.uuid4()))
    first_name: str
    surname: str
    email: str
    address: str
    username: str

    @property
    def customer_id(self) -> str:
        return self.row_key

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.surname}"


# Input schema for registering a customer
class CustomerCreate(BaseModel):
    first_name: str = Field(..., min_length=1)
    surname: str = Field(..., min_length=1)
    email: EmailStr
    address: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)


class CustomerOut(ORMBase):
    id: str = Field(validation_alias="row_key")
    first_name: str
    surname: str
    email: str
    address: str
    username: str
    etag: str


class CustomerList(BaseModel):
    items: List[CustomerOut]
    total: int
