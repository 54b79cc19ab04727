# model/city.py
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime

from model.base import Base
from model.custom_types import MyBIGINT


class City(Base):
    """Cities offered in pickers (city of interest, property location)."""

    __tablename__ = "cities"

    id = Column(MyBIGINT(unsigned=True), primary_key=True, autoincrement=True)
    name = Column(String(120), unique=True, nullable=False)
    state = Column(String(120), nullable=False)
    country = Column(String(120), nullable=False, default="India")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<City(id={self.id}, name={self.name})>"
