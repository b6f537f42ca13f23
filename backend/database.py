# backend/database.py
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from utils.exceptions import ConcurrentModificationError

# 1. Database URL from the environment / .env (SQLite file by default)
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# 2. Hosted Postgres hands out postgres:// URLs, SQLAlchemy wants postgresql://
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)

# 3. Driver specific options
if "sqlite" in SQLALCHEMY_DATABASE_URL:
    connect_args = {"check_same_thread": False} # SQLite only
else:
    connect_args = {}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=connect_args
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

@contextmanager
def transaction(db: Session):
    """One service operation = one unit of work: commit on success, roll back on any error."""
    try:
        yield db
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConcurrentModificationError(str(e)) from e
    except Exception:
        db.rollback()
        raise

def init_db():
    Base.metadata.create_all(bind=engine)
