"""
Product Model
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship

from stockflow.core import Base
from .base import UUIDMixin, TimestampMixin


class Product(Base, UUIDMixin, TimestampMixin):
    """Product Master"""
    __tablename__ = "product"

    sku = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(300), nullable=False)
    is_active = Column(Boolean, default=True)

    # Relationships
    inventory_records = relationship("InventoryRecord", back_populates="product")
    order_items = relationship("OrderItem", back_populates="product")

    def __repr__(self):
        return f"<Product {self.sku}>"
