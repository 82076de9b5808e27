"""
Back Order Model - unmet portion of an order line
"""
import enum

from sqlalchemy import Column, String, Integer, ForeignKey, Text, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from stockflow.core import Base
from .base import UUIDMixin, TimestampMixin


class BackOrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    ALLOCATED = "ALLOCATED"
    PACKED = "PACKED"
    FULFILLED = "FULFILLED"
    CANCELLED = "CANCELLED"


class BackOrder(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "back_order"

    order_id = Column(Uuid(as_uuid=True), ForeignKey("order_header.id"), nullable=False, index=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id"), nullable=False, index=True)

    quantity_back_ordered = Column(Integer, nullable=False)
    quantity_fulfilled = Column(Integer, default=0, nullable=False)

    status = Column(String(20), default=BackOrderStatus.PENDING.value, nullable=False, index=True)
    reason = Column(String(50))  # INSUFFICIENT_STOCK_AT_ALLOCATION
    reason_details = Column(Text)

    # Relationships
    order = relationship("OrderHeader", back_populates="back_orders")
    product = relationship("Product")

    __table_args__ = (
        UniqueConstraint("order_id", "product_id", name="uq_back_order_order_product"),
    )

    @property
    def quantity_outstanding(self) -> int:
        return self.quantity_back_ordered - (self.quantity_fulfilled or 0)
