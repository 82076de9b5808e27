"""
Pick List Models - a wave of location-ordered pick tasks
"""
import enum

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from stockflow.core import Base
from .base import UUIDMixin, TimestampMixin, utcnow


class PickListStatus(str, enum.Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PickItemStatus(str, enum.Enum):
    PENDING = "PENDING"
    PICKED = "PICKED"
    SHORT_PICK = "SHORT_PICK"
    SKIPPED = "SKIPPED"


TERMINAL_ITEM_STATUSES = (
    PickItemStatus.PICKED.value,
    PickItemStatus.SHORT_PICK.value,
    PickItemStatus.SKIPPED.value,
)


class PickEventType(str, enum.Enum):
    PICK_STARTED = "PICK_STARTED"
    ITEM_PICKED = "ITEM_PICKED"
    ITEM_SHORT_PICKED = "ITEM_SHORT_PICKED"
    ITEM_SKIPPED = "ITEM_SKIPPED"
    PICK_PAUSED = "PICK_PAUSED"
    PICK_RESUMED = "PICK_RESUMED"
    PICK_REASSIGNED = "PICK_REASSIGNED"
    PICK_COMPLETED = "PICK_COMPLETED"
    PICK_CANCELLED = "PICK_CANCELLED"


class PickList(Base, UUIDMixin, TimestampMixin):
    """A batch/wave of pick tasks"""
    __tablename__ = "pick_list"

    batch_number = Column(String(30), unique=True, nullable=False)
    status = Column(String(20), default=PickListStatus.PENDING.value, nullable=False, index=True)
    assigned_to = Column(String(100))

    total_items = Column(Integer, default=0, nullable=False)
    picked_items = Column(Integer, default=0, nullable=False)

    start_time = Column(DateTime(timezone=True))
    end_time = Column(DateTime(timezone=True))
    notes = Column(Text)

    # Relationships
    items = relationship(
        "PickListItem",
        back_populates="pick_list",
        cascade="all, delete-orphan",
        order_by="PickListItem.pick_sequence",
    )
    events = relationship("PickEvent", back_populates="pick_list", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<PickList {self.batch_number} {self.status} {self.picked_items}/{self.total_items}>"


class PickListItem(Base, UUIDMixin):
    __tablename__ = "pick_list_item"

    pick_list_id = Column(Uuid(as_uuid=True), ForeignKey("pick_list.id"), nullable=False, index=True)
    order_id = Column(Uuid(as_uuid=True), ForeignKey("order_header.id"), nullable=False, index=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("product.id"), nullable=False)
    location_id = Column(Uuid(as_uuid=True), ForeignKey("location.id"), nullable=False)

    quantity_to_pick = Column(Integer, nullable=False)
    quantity_picked = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=PickItemStatus.PENDING.value, nullable=False)
    pick_sequence = Column(Integer, nullable=False)

    picked_by = Column(String(100))
    picked_at = Column(DateTime(timezone=True))
    short_pick_reason = Column(Text)
    notes = Column(Text)

    # Relationships
    pick_list = relationship("PickList", back_populates="items")
    order = relationship("OrderHeader")
    product = relationship("Product")
    location = relationship("Location")

    __table_args__ = (
        UniqueConstraint("pick_list_id", "pick_sequence", name="uq_pick_list_item_sequence"),
    )


class PickEvent(Base, UUIDMixin):
    """Pick audit trail (append-only)"""
    __tablename__ = "pick_event"

    pick_list_id = Column(Uuid(as_uuid=True), ForeignKey("pick_list.id"), nullable=False, index=True)
    item_id = Column(Uuid(as_uuid=True), ForeignKey("pick_list_item.id"))
    event_type = Column(String(30), nullable=False)
    actor = Column(String(100), nullable=False)
    location = Column(String(100))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    pick_list = relationship("PickList", back_populates="events")
