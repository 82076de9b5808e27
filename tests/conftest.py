import os

# Engine in stockflow.core is built at import time; keep it off PostgreSQL.
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")
os.environ.setdefault("NOTIFY_WEBHOOK_URL", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stockflow.core import Base, get_db
from stockflow.models import Location, OrderHeader, Product
from stockflow.schemas.order import OrderCreate, OrderItemCreate
from stockflow.services import InventoryService, OrderService


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    from main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ===================== SEED HELPERS =====================

@pytest.fixture()
def make_product(db):
    counter = {"n": 0}

    def _make(sku=None, name=None):
        counter["n"] += 1
        product = Product(sku=sku or f"SKU-{counter['n']:03d}", name=name or f"Product {counter['n']}")
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture()
def make_location(db):
    def _make(name, zone=None):
        location = Location(name=name, zone=zone)
        db.add(location)
        db.commit()
        return location

    return _make


@pytest.fixture()
def stock(db):
    """Receive stock through the ledger so counters and transactions agree"""
    def _stock(product, location, quantity):
        return InventoryService.receive(db, product.id, location.id, quantity, "seed")

    return _stock


@pytest.fixture()
def make_order(db):
    counter = {"n": 0}

    def _make(*lines, order_number=None) -> OrderHeader:
        counter["n"] += 1
        data = OrderCreate(
            order_number=order_number or f"T-{counter['n']:04d}",
            customer_name="Test Customer",
            items=[OrderItemCreate(product_id=p.id, quantity=q, unit_price="10.00") for p, q in lines],
        )
        return OrderService.create_order(db, data, "tester")

    return _make
