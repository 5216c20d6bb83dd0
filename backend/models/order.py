from sqlalchemy import Column, Integer, String, Float, DateTime, CheckConstraint
from database import Base
from models.table_entity import TableEntityMixin

class Order(TableEntityMixin, Base):
    __tablename__ = "orders"

    customer_id = Column(String(64), nullable=False, index=True)
    product_id = Column(String(64), nullable=False, index=True)
    quantity = Column(Integer, CheckConstraint("quantity > 0"), nullable=False)
    order_status = Column(String, nullable=False, default="Pending")
    order_date = Column(DateTime(timezone=True), nullable=False)

    # Snapshots copied at creation time, never resynchronized.
    # The total is derived from unit_price * quantity and not stored.
    unit_price = Column(Float, nullable=False)
    product_name = Column(String, nullable=False)
    customer_name = Column(String, nullable=False)
    username = Column(String, nullable=False)
