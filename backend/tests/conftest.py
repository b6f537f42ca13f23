import itertools
import os

# Settings are read at import time, point the app at a throwaway database first
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
import models.log  # noqa: F401
from models.product import Product
from models.stock import Stock
from models.task import Task, TaskProduct, TaskStatus, TaskPriority
from models.users import User, Role
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token

# One connection shared by the test session and the TestClient worker thread
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "secret123"
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def make_user(db):
    counter = itertools.count(1)

    def _make(role=Role.WORKER, active=True):
        n = next(counter)
        user = User(
            name=f"{role.value.title()} {n}",
            email=f"{role.value.lower()}{n}@example.com",
            password_hash=PASSWORD_HASH,
            role=role,
            active=active,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture()
def admin(make_user):
    return make_user(Role.ADMIN)


@pytest.fixture()
def manager(make_user):
    return make_user(Role.MANAGER)


@pytest.fixture()
def worker(make_user):
    return make_user(Role.WORKER)


@pytest.fixture()
def make_product(db):
    """Product with its stock record, quantities set directly."""
    counter = itertools.count(1)

    def _make(available=100, reserved=0, minimum_level=10, unit_price=10.0, name=None):
        n = next(counter)
        product = Product(sku=f"SKU-{n:03d}", name=name or f"Product {n}", unit_price=unit_price)
        product.stock = Stock(
            quantity_available=available,
            quantity_reserved=reserved,
            minimum_level=minimum_level,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture()
def make_task(db, manager):
    counter = itertools.count(1)

    def _make(status=TaskStatus.PENDING, assignee=None, priority=TaskPriority.MEDIUM,
              due_date=None, title=None, description=None):
        n = next(counter)
        task = Task(
            title=title or f"Task {n}",
            description=description,
            status=status,
            priority=priority,
            due_date=due_date,
            completed=status == TaskStatus.COMPLETED,
            assigned_user=assignee,
            created_by_user=manager,
        )
        db.add(task)
        db.commit()
        return task

    return _make


@pytest.fixture()
def attach(db):
    """Adds an assignment row without touching stock, for arranging terminal tasks."""
    def _attach(task, product, quantity, quantity_used=0):
        task_product = TaskProduct(task=task, product=product, quantity=quantity, quantity_used=quantity_used)
        db.add(task_product)
        db.commit()
        return task_product

    return _attach


@pytest.fixture()
def client(db):
    from main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user):
    token = create_access_token({"sub": user.email, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth():
    return auth_headers
