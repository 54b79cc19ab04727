# config/db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config.settings import DB_URL

engine = create_engine(DB_URL, pool_pre_ping=True, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Yield a request-scoped session; always closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
