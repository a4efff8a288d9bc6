import os
import sys
from decimal import Decimal
from pathlib import Path

# Must be set before auth.py is imported: it reads them at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

# The backend is a flat set of modules, put it on the path regardless of
# where the project is checked out.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

import models
from config import Settings
from database import create_store_engine, make_session_factory
from main import create_app
from normalize import new_id, utcnow


class Seeder:
    """Inserts records directly, bypassing the services under test."""

    def __init__(self, db):
        self.db = db

    def _add(self, record):
        self.db.add(record)
        self.db.commit()
        return record

    def menu(self, name="Main", category="Dinner"):
        now = utcnow()
        return self._add(models.Menu(
            menu_id=new_id(), name=name, category=category, created_at=now, updated_at=now,
        ))

    def table(self, number=1, guests=4):
        now = utcnow()
        return self._add(models.Table(
            table_id=new_id(), table_number=number, number_of_guests=guests, created_at=now, updated_at=now,
        ))

    def food(self, menu_id=None, name="Soup", price="5.00", image="soup.png"):
        if menu_id is None:
            menu_id = self.menu().menu_id
        now = utcnow()
        return self._add(models.Food(
            food_id=new_id(), name=name, price=Decimal(price), food_image=image, menu_id=menu_id,
            created_at=now, updated_at=now,
        ))

    def order(self, table_id=None):
        now = utcnow()
        return self._add(models.Order(
            order_id=new_id(), order_date=now, table_id=table_id, created_at=now, updated_at=now,
        ))

    def item(self, order_id, food_id, quantity=1, unit_price="1.00"):
        now = utcnow()
        return self._add(models.OrderItem(
            order_item_id=new_id(), order_id=order_id, food_id=food_id, quantity=quantity,
            unit_price=Decimal(unit_price), created_at=now, updated_at=now,
        ))


@pytest.fixture
def engine():
    engine = create_store_engine("sqlite://", timeout=5, poolclass=StaticPool)
    models.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = make_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def client(engine):
    settings = Settings(env_file=None, cache_enabled=False)
    app = create_app(settings, engine=engine)
    return TestClient(app)


@pytest.fixture
def auth_headers(client):
    response = client.post("/users/signup", json={
        "first_name": "Anna",
        "last_name": "Smith",
        "email": "anna@example.com",
        "phone": "+100000001",
        "password": "s3cret-pass",
    })
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}
