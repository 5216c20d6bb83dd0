# backend/models/product.py
from sqlalchemy import Column, Integer, String, Float, CheckConstraint
from database import Base
from models.table_entity import TableEntityMixin

# Model Product
# Catalogue entry in the "Product" partition. stock_quantity is changed
# outside the product form only by order placement (and its rollback).
class Product(TableEntityMixin, Base):
    __tablename__ = "products"

    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=False, default="")

    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)
    stock_quantity = Column(Integer, CheckConstraint("stock_quantity >= 0"), nullable=False)

    # Blob URL of the product image, empty when none was uploaded.
    image_url = Column(String, nullable=False, default="")
