"""
Order Models
"""
import enum

from sqlalchemy import Column, String, Numeric, Integer, Boolean, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from stockflow.core import Base
from .base import UUIDMixin, TimestampMixin, utcnow


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    ALLOCATED = "ALLOCATED"
    PICKING = "PICKING"
    PICKED = "PICKED"
    PARTIALLY_PICKED = "PARTIALLY_PICKED"
    PACKED = "PACKED"
    PARTIALLY_SHIPPED = "PARTIALLY_SHIPPED"
    SHIPPED = "SHIPPED"
    FULFILLED = "FULFILLED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class OrderHeader(Base, UUIDMixin, TimestampMixin):
    """Order Header"""
    __tablename__ = "order_header"

    order_number = Column(String(50), unique=True, nullable=False, index=True)
    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False, index=True)

    customer_name = Column(String(200))
    total_amount = Column(Numeric(12, 2), default=0)
    has_back_orders = Column(Boolean, default=False, nullable=False)

    # Relationships
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.changed_at",
    )
    reservations = relationship("Reservation", back_populates="order")
    back_orders = relationship("BackOrder", back_populates="order")

    def __repr__(self):
        return f"<Order {self.order_number} {self.status}>"


class OrderItem(Base, UUIDMixin):
    """Order Item/Line"""
    __tablename__ = "order_item"

    order_id = Column(Uuid(as_uuid=True), ForeignKey("order_header.id"), nullable=False, index=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id"), nullable=False)

    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Numeric(12, 2), default=0)

    # Relationships
    order = relationship("OrderHeader", back_populates="items")
    product = relationship("Product", back_populates="order_items")


class OrderStatusHistory(Base, UUIDMixin):
    """One row per order status change (append-only)"""
    __tablename__ = "order_status_history"

    order_id = Column(Uuid(as_uuid=True), ForeignKey("order_header.id"), nullable=False, index=True)
    previous_status = Column(String(20), nullable=False)
    new_status = Column(String(20), nullable=False)
    changed_by = Column(String(100), nullable=False)
    notes = Column(Text)
    changed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    order = relationship("OrderHeader", back_populates="status_history")
