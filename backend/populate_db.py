import os
import random
import sys
from datetime import datetime, timedelta

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

# Database models and setup
from database import SessionLocal, transaction, init_db
from models.product import Product
from models.stock import Stock
from models.task import Task, TaskPriority
from models.users import User, Role
from schemas.task import TaskCreate
from services import stock_service, task_service, task_product_service
from utils.hashing import get_password_hash

# Configuration
DEFAULT_PASSWORD = "warehouse123"
LOCATIONS = ["A1-01", "B2-05", "C3-10", "D4-01"]

SEED_USERS = [
    ("Admin", "admin@warehouse.com", Role.ADMIN, "Management"),
    ("Maria Manager", "manager@warehouse.com", Role.MANAGER, "Logistics"),
    ("Walter Worker", "worker@warehouse.com", Role.WORKER, "Picking"),
]

# sku, name, category, unit price
SEED_PRODUCTS = [
    ("PAL-EUR-120", "Euro pallet 120x80", "Pallets", 45.0),
    ("BOX-CARD-M", "Cardboard box M", "Packaging", 2.5),
    ("BOX-CARD-L", "Cardboard box L", "Packaging", 3.9),
    ("TAPE-48", "Packing tape 48mm", "Packaging", 6.2),
    ("WRAP-STR-500", "Stretch wrap 500mm", "Packaging", 29.0),
    ("LBL-A6", "Shipping labels A6 (roll)", "Labels", 18.5),
    ("GLV-M", "Work gloves M", "Safety", 9.9),
    ("VEST-HV", "High visibility vest", "Safety", 14.0),
]
# End Configuration


def seed_users(session):
    """Creates the demo accounts that do not exist yet."""
    users = {}
    with transaction(session):
        for name, email, role, department in SEED_USERS:
            user = session.query(User).filter(User.email == email).first()
            if not user:
                user = User(
                    name=name,
                    email=email,
                    password_hash=get_password_hash(DEFAULT_PASSWORD),
                    role=role,
                    department=department,
                )
                session.add(user)
            users[role] = user
    return users


def seed_products(session, admin):
    """Creates catalogue products with their stock records."""
    products = []
    with transaction(session):
        for sku, name, category, price in SEED_PRODUCTS:
            product = session.query(Product).filter(Product.sku == sku).first()
            if product:
                products.append(product)
                continue
            product = Product(sku=sku, name=name, category=category, unit_price=price)
            product.stock = Stock(quantity_available=0, quantity_reserved=0, minimum_level=10,
                                  location=random.choice(LOCATIONS))
            session.add(product)
            session.flush()
            stock_service.increase(session, product.stock, random.randint(5, 300),
                                   user_id=admin.id, reason="Initial stock")
            products.append(product)
    return products


def seed_tasks(session, users, products):
    """Creates a few tasks with reserved products for the worker account."""
    if session.query(Task).count():
        print("Tasks already exist, skipping.")
        return

    manager = users[Role.MANAGER]
    worker = users[Role.WORKER]
    now = datetime.now()

    samples = [
        ("Pick order #1001", TaskPriority.HIGH, now + timedelta(days=1)),
        ("Restock aisle B", TaskPriority.MEDIUM, now + timedelta(days=3)),
        ("Inventory count zone D", TaskPriority.LOW, now - timedelta(days=1)),
    ]
    for title, priority, due_date in samples:
        task = task_service.create_task(
            session,
            TaskCreate(title=title, priority=priority, due_date=due_date, assigned_user_id=worker.id),
            created_by_user_id=manager.id,
        )
        for product in random.sample(products, 2):
            available = product.stock.quantity_available
            if available < 1:
                continue
            task_product_service.assign_product_to_task(
                session, task.id, product.id, min(available, random.randint(1, 5)), actor_id=manager.id
            )
        print(f"Created task '{task.title}' (id={task.id}).")


def populate_database():
    """Main execution function to populate database."""
    init_db()
    session = SessionLocal()
    try:
        users = seed_users(session)
        products = seed_products(session, users[Role.ADMIN])
        print(f"Users: {len(users)}, products: {len(products)}.")
        seed_tasks(session, users, products)
        print(f"Demo account password: {DEFAULT_PASSWORD}")
    finally:
        session.close()


if __name__ == "__main__":
    populate_database()
