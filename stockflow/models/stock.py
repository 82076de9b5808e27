"""
Stock & Inventory Models
"""
import enum

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Uuid, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from stockflow.core import Base
from .base import UUIDMixin, TimestampMixin, utcnow


class TransactionType(str, enum.Enum):
    RECEIPT = "RECEIPT"
    SALE = "SALE"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER = "TRANSFER"
    ALLOCATION = "ALLOCATION"
    DEALLOCATION = "DEALLOCATION"
    COUNT = "COUNT"


# Types whose quantity_change moves physical stock. ALLOCATION and
# DEALLOCATION only move stock between available and reserved.
ON_HAND_TRANSACTION_TYPES = (
    TransactionType.RECEIPT,
    TransactionType.SALE,
    TransactionType.ADJUSTMENT,
    TransactionType.TRANSFER,
    TransactionType.COUNT,
)


class ReservationStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CONSUMED = "CONSUMED"   # picked
    RELEASED = "RELEASED"   # order cancelled


class InventoryRecord(Base, UUIDMixin, TimestampMixin):
    """On-hand / reserved counters per product and location"""
    __tablename__ = "inventory_record"

    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id"), nullable=False, index=True)
    location_id = Column(Uuid(as_uuid=True), ForeignKey("location.id"), nullable=False, index=True)

    quantity_on_hand = Column(Integer, default=0, nullable=False)
    quantity_reserved = Column(Integer, default=0, nullable=False)

    # Relationships
    product = relationship("Product", back_populates="inventory_records")
    location = relationship("Location", back_populates="inventory_records")

    __table_args__ = (
        UniqueConstraint("product_id", "location_id", name="uq_inventory_product_location"),
        CheckConstraint("quantity_reserved >= 0", name="ck_inventory_reserved_nonneg"),
    )

    @property
    def quantity_available(self) -> int:
        return (self.quantity_on_hand or 0) - (self.quantity_reserved or 0)

    def __repr__(self):
        return f"<InventoryRecord {self.product_id}@{self.location_id} {self.quantity_on_hand}/{self.quantity_reserved}>"


class InventoryTransaction(Base, UUIDMixin):
    """Stock Movement Ledger (append-only)"""
    __tablename__ = "inventory_transaction"

    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id"), nullable=False, index=True)
    location_id = Column(Uuid(as_uuid=True), ForeignKey("location.id"), nullable=False, index=True)

    # Movement info
    transaction_type = Column(String(20), nullable=False)
    quantity_change = Column(Integer, nullable=False)  # Positive or negative

    # Reference
    reference_type = Column(String(30))  # ORDER, BACKORDER_ALLOCATION, PICK_LIST, RECEIPT, TRANSFER, COUNT
    reference_id = Column(String(50))

    # Metadata
    actor = Column(String(100))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    # Relationships
    product = relationship("Product")
    location = relationship("Location")


class Reservation(Base, UUIDMixin, TimestampMixin):
    """Quantity set aside at one location for one order line"""
    __tablename__ = "reservation"

    order_id = Column(Uuid(as_uuid=True), ForeignKey("order_header.id"), nullable=False, index=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id"), nullable=False)
    location_id = Column(Uuid(as_uuid=True), ForeignKey("location.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    status = Column(String(20), default=ReservationStatus.ACTIVE.value, nullable=False)

    # Relationships
    order = relationship("OrderHeader", back_populates="reservations")
    product = relationship("Product")
    location = relationship("Location")

    __table_args__ = (
        UniqueConstraint("order_id", "product_id", "location_id", name="uq_reservation_order_product_location"),
    )
