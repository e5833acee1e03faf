# db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

import os

# In-memory by default: the order ledger only lives as long as the process.
DB_URL = os.getenv("DATABASE_URL", "sqlite://")

# sqlite needs check_same_thread for single-process usage; an in-memory
# database must also be shared by every session, hence StaticPool
engine_args = {}
if DB_URL.startswith("sqlite"):
    engine_args["connect_args"] = {"check_same_thread": False}
    if DB_URL in ("sqlite://", "sqlite:///:memory:"):
        engine_args["poolclass"] = StaticPool

engine = create_engine(DB_URL, echo=False, future=True, **engine_args)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

class Base(DeclarativeBase):
    pass

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Import ORM classes before create_all so metadata knows them
    from storage import OrderORM  # noqa
    Base.metadata.create_all(bind=engine)
