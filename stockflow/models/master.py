"""
Master Tables: Location
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship

from stockflow.core import Base
from .base import UUIDMixin, TimestampMixin


class Location(Base, UUIDMixin, TimestampMixin):
    """Storage location (bin/shelf) inside the warehouse"""
    __tablename__ = "location"

    name = Column(String(100), unique=True, nullable=False, index=True)  # e.g. A1-03-B
    zone = Column(String(30))  # Explicit zone; derived from name when empty
    is_active = Column(Boolean, default=True)

    # Relationships
    inventory_records = relationship("InventoryRecord", back_populates="location")

    def __repr__(self):
        return f"<Location {self.name}>"
