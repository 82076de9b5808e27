"""
Product & Location Schemas
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from uuid import UUID


class ProductCreate(BaseModel):
    sku: str
    name: str
    is_active: bool = True


class ProductResponse(BaseModel):
    id: UUID
    sku: str
    name: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class LocationCreate(BaseModel):
    name: str
    zone: Optional[str] = None
    is_active: bool = True


class LocationResponse(BaseModel):
    id: UUID
    name: str
    zone: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True
