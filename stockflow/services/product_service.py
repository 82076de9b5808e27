"""
Product Service - product and location master data
"""
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from stockflow.core import unit_of_work
from stockflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from stockflow.models import Location, Product
from stockflow.schemas.product import LocationCreate, ProductCreate


class ProductService:
    """Master data business logic"""

    @staticmethod
    def get_product_by_id(db: Session, product_id: UUID) -> Product:
        product = db.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    @staticmethod
    def get_product_by_sku(db: Session, sku: str) -> Optional[Product]:
        return db.query(Product).filter(Product.sku == sku).first()

    @staticmethod
    def create_product(db: Session, product_data: ProductCreate) -> Product:
        if not product_data.sku or not product_data.name:
            raise ValidationError("sku and name are required")
        if ProductService.get_product_by_sku(db, product_data.sku):
            raise ConflictError(f"SKU {product_data.sku} already exists")

        with unit_of_work(db):
            product = Product(**product_data.model_dump())
            db.add(product)
        db.refresh(product)
        return product

    @staticmethod
    def get_location_by_id(db: Session, location_id: UUID) -> Location:
        location = db.get(Location, location_id)
        if location is None:
            raise NotFoundError(f"Location {location_id} not found")
        return location

    @staticmethod
    def create_location(db: Session, location_data: LocationCreate) -> Location:
        if not location_data.name:
            raise ValidationError("Location name is required")
        if db.query(Location).filter(Location.name == location_data.name).first():
            raise ConflictError(f"Location {location_data.name} already exists")

        with unit_of_work(db):
            location = Location(**location_data.model_dump())
            db.add(location)
        db.refresh(location)
        return location
