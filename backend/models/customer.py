# backend/models/customer.py
from sqlalchemy import Column, String
from database import Base
from models.table_entity import TableEntityMixin

# Customer record stored in the "Customer" partition.
# Username and email are only checked for uniqueness before insert,
# the table itself does not enforce it.
class Customer(TableEntityMixin, Base):
    __tablename__ = "customers"

    first_name = Column(String, nullable=False)
    surname = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    address = Column(String, nullable=False)
    username = Column(String, nullable=False, index=True)
